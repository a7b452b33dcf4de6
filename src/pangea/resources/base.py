"""Base attribute model and validation entry point for resource schemas."""

import re
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError, field_validator
from .reference import ResourceReference
from ..synthesizer.abstract import BlockContext, normalize_value
from ..utils.errors import ResourceValidationError
from ..utils.logging import get_logger

logger = get_logger("resources.base")

SchemaT = TypeVar("SchemaT", bound="BaseAttributes")

# Terraform meta-arguments accepted by every resource, written after its own attributes
META_ARGUMENTS = ("depends_on", "lifecycle", "provider")

ADDRESS_PATTERN = re.compile(r"^[a-zA-Z_][\w-]*(\.[a-zA-Z_][\w-]*)+$")
PROVIDER_PATTERN = re.compile(r"^[a-zA-Z_][\w-]*(\.[a-zA-Z_][\w-]*)?$")


class FrozenModel(BaseModel):
    """Immutable record that rejects unknown keys."""

    class Config:
        """Pydantic config."""
        frozen = True
        extra = "forbid"
        populate_by_name = True

    def to_dict(self) -> Dict[str, Any]:
        """Return the validated attributes with unset optional values removed."""
        return self.model_dump(exclude_none=True, by_alias=True)


class NestedBlock(FrozenModel):
    """Attribute record for a nested block inside a resource."""
    pass


class Lifecycle(NestedBlock):
    create_before_destroy: Optional[bool] = None
    prevent_destroy: Optional[bool] = None
    ignore_changes: Optional[Union[List[str], Literal["all"]]] = None
    replace_triggered_by: Optional[List[str]] = None


class BaseAttributes(FrozenModel):
    """
    Immutable, validated attribute record for one resource.

    Besides its own schema every resource accepts the ``depends_on``,
    ``lifecycle`` and ``provider`` meta-arguments.
    """
    depends_on: Optional[List[str]] = None
    lifecycle: Optional[Lifecycle] = None
    provider: Optional[str] = None

    @field_validator("depends_on")
    @classmethod
    def check_depends_on(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        addresses = []
        for entry in value:
            address = entry[2:-1] if entry.startswith("${") and entry.endswith("}") else entry
            if not ADDRESS_PATTERN.match(address):
                raise ValueError(f"depends_on entry '{entry}' is not a resource, data source or module address")
            addresses.append(address)
        return addresses

    @field_validator("provider")
    @classmethod
    def check_provider(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not PROVIDER_PATTERN.match(value):
            raise ValueError(f"provider '{value}' must look like 'aws' or 'aws.<alias>'")
        return value


def merge_attributes(attributes: Optional[Mapping[str, Any]], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Combine an attribute mapping with keyword arguments; keywords win."""
    merged: Dict[str, Any] = {}
    if attributes:
        merged.update({str(key): value for key, value in attributes.items()})
    merged.update(overrides)
    return merged


def _format_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "attributes"
    message = error.get("msg", "invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{location}: {message}"


def validate_attributes(schema: Type[SchemaT], resource_type: str, name: str,
                        raw: Optional[Mapping[str, Any]]) -> SchemaT:
    """
    Validate raw attributes against a resource schema.

    Resource references in the input are replaced by their ``id``
    interpolation before validation, except in ``depends_on`` where they
    become the resource address.

    Args:
        schema: BaseAttributes subclass for the resource type
        resource_type: Terraform resource type, used in error messages
        name: Resource name, used in error messages
        raw: Raw attribute mapping

    Returns:
        Validated, immutable attribute record

    Raises:
        ResourceValidationError: If any field fails validation
    """
    raw = dict(raw or {})
    if isinstance(raw.get("depends_on"), (list, tuple)):
        raw["depends_on"] = [
            entry.address if isinstance(entry, ResourceReference) else entry for entry in raw["depends_on"]
        ]
    data = normalize_value(raw)
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        errors = [_format_error(error) for error in e.errors()]
        logger.debug(f"Validation failed for {resource_type}.{name}: {errors}")
        raise ResourceValidationError(
            f"Invalid attributes for {resource_type}.{name}: {'; '.join(errors)}",
            resource_type=resource_type,
            name=name,
            errors=errors,
        ) from e


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (dict, list)) and not value)


def write_attributes(block: BlockContext, attributes: BaseAttributes,
                     blocks: Iterable[str] = (), skip: Iterable[str] = ()) -> None:
    """
    Write validated attributes into an open resource block.

    Unset and empty values are omitted. Keys listed in ``blocks`` are
    written as nested blocks, one block per list entry. Meta-arguments
    of a resource record come last.
    """
    blocks = set(blocks)
    skip = set(skip)
    if isinstance(attributes, BaseAttributes):
        skip.update(META_ARGUMENTS)
    for key, value in attributes.to_dict().items():
        if key in skip or _is_empty(value):
            continue
        if key in blocks:
            for entry in value if isinstance(value, list) else [value]:
                with block.block(key) as nested:
                    nested.update({k: v for k, v in entry.items() if not _is_empty(v)})
        else:
            block.set(key, value)
    if isinstance(attributes, BaseAttributes):
        write_meta_arguments(block, attributes)


def write_meta_arguments(block: BlockContext, attributes: BaseAttributes) -> None:
    """Write ``depends_on``, ``lifecycle`` and ``provider`` into a resource block."""
    if attributes.depends_on:
        block.set("depends_on", list(attributes.depends_on))
    if attributes.lifecycle is not None:
        lifecycle = attributes.lifecycle.to_dict()
        if lifecycle:
            with block.block("lifecycle") as nested:
                nested.update(lifecycle)
    if attributes.provider:
        block.set("provider", attributes.provider)


def mutually_exclusive(model: BaseModel, first: str, second: str) -> None:
    """Raise ValueError if both fields are set on a model."""
    if getattr(model, first) is not None and getattr(model, second) is not None:
        raise ValueError(f"Cannot specify both '{first}' and '{second}'")
