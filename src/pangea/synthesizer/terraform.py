"""Terraform JSON synthesizer built on the generic block synthesizer."""

import json
import re
from typing import Any, Dict, List, Optional, Tuple

from .abstract import AbstractSynthesizer, BlockContext
from ..utils.errors import DuplicateResourceError, SynthesisError
from ..utils.logging import get_logger

logger = get_logger("synthesizer.terraform")

TERRAFORM_KEYS = (
    "terraform",
    "provider",
    "variable",
    "data",
    "resource",
    "locals",
    "output",
    "module",
)

NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*$")


def interpolation(*parts: str) -> str:
    """Build a Terraform interpolation string such as ``${aws_vpc.main.id}``."""
    if not parts or any(not part for part in parts):
        raise SynthesisError(f"Interpolation parts must be non-empty: {parts}")
    return "${" + ".".join(parts) + "}"


def _check_name(kind: str, name: str) -> None:
    if not isinstance(name, str) or not NAME_PATTERN.match(name):
        raise SynthesisError(
            f"Invalid {kind} name '{name}': must start with a letter or underscore "
            "and contain only letters, digits, underscores and hyphens"
        )


class TerraformSynthesizer(AbstractSynthesizer):
    """
    Synthesizer whose top-level keys are the Terraform JSON block types.

    Example:
        synth = TerraformSynthesizer()
        with synth.resource("aws_vpc", "main") as vpc:
            vpc.cidr_block("10.0.0.0/16")
        synth.to_json()
    """

    def __init__(self):
        super().__init__(TERRAFORM_KEYS, repeatable_keys=("provider",))

    def resource(self, resource_type: str, name: str) -> BlockContext:
        """
        Open a ``resource "<type>" "<name>"`` block.

        Raises:
            DuplicateResourceError: If the type/name pair is already defined
            SynthesisError: If the name is not a valid Terraform identifier
        """
        _check_name("resource type", resource_type)
        _check_name("resource", name)
        logger.debug(f"Opening resource {resource_type}.{name}")
        return self.block("resource", resource_type, name)

    def data(self, data_type: str, name: str) -> BlockContext:
        _check_name("data source type", data_type)
        _check_name("data source", name)
        return self.block("data", data_type, name)

    def provider(self, name: str) -> BlockContext:
        _check_name("provider", name)
        return self.block("provider", name)

    def variable(self, name: str) -> BlockContext:
        _check_name("variable", name)
        return self.block("variable", name)

    def output(self, name: str) -> BlockContext:
        _check_name("output", name)
        return self.block("output", name)

    def module(self, name: str) -> BlockContext:
        _check_name("module", name)
        return self.block("module", name)

    def locals(self) -> BlockContext:
        return self.block("locals")

    def terraform(self) -> BlockContext:
        return self.block("terraform")

    def has_resource(self, resource_type: str, name: str) -> bool:
        return name in self.synthesis.get("resource", {}).get(resource_type, {})

    def resource_addresses(self) -> List[str]:
        """Return ``type.name`` for every resource in definition order."""
        return [
            f"{resource_type}.{name}"
            for resource_type, by_name in self.synthesis.get("resource", {}).items()
            for name in by_name
        ]

    def to_json(self, indent: Optional[int] = 2, sort_keys: bool = False) -> str:
        """Serialize the document as Terraform JSON."""
        return json.dumps(self.synthesis, indent=indent, sort_keys=sort_keys)

    @staticmethod
    def ref(resource_type: str, name: str, attribute: str = "id") -> str:
        return interpolation(resource_type, name, attribute)

    @staticmethod
    def data_ref(data_type: str, name: str, attribute: str = "id") -> str:
        return interpolation("data", data_type, name, attribute)

    @staticmethod
    def var(name: str) -> str:
        return interpolation("var", name)

    @staticmethod
    def local(name: str) -> str:
        return interpolation("local", name)

    def _duplicate_error(self, key: str, labels: Tuple[str, ...]) -> SynthesisError:
        if key == "resource":
            return DuplicateResourceError(
                f"Resource {labels[0]}.{labels[-1]} is already defined; "
                "resource names must be unique per type"
            )
        return super()._duplicate_error(key, labels)

    def summary(self) -> Dict[str, Any]:
        """Count blocks per top-level key."""
        counts: Dict[str, Any] = {}
        for key, value in self.synthesis.items():
            if key == "resource" or key == "data":
                counts[key] = sum(len(by_name) for by_name in value.values())
            elif isinstance(value, dict):
                counts[key] = len(value)
        return counts
