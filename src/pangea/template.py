"""Template: the user-facing handle that binds resource functions to one synthesizer."""

from functools import partial
from typing import Any, Callable, Dict, List, Optional

from .resources import registry
from .resources.base import merge_attributes
from .resources.reference import CompositeReference, ResourceReference
from .synthesizer.abstract import BlockContext
from .synthesizer.terraform import TerraformSynthesizer
from .utils.errors import UnknownResourceError
from .utils.logging import get_logger

logger = get_logger("template")


class Template:
    """
    One Terraform document under construction.

    Every registered resource type is available as a method bound to this
    template's synthesizer, and every composition as a method bound to the
    template itself:

        t = Template("network")
        vpc = t.aws_vpc("main", cidr_block="10.0.0.0/16")
        t.aws_subnet("a", vpc_id=vpc.id, cidr_block="10.0.1.0/24", availability_zone="us-east-1a")
        t.synthesis
    """

    def __init__(self, name: str = "main", synth: Optional[TerraformSynthesizer] = None):
        self.name = name
        self.synth = synth if synth is not None else TerraformSynthesizer()
        self.references: Dict[str, ResourceReference] = {}

    def __getattr__(self, item: str) -> Callable[..., Any]:
        if item.startswith("_") or "synth" not in self.__dict__:
            raise AttributeError(item)
        try:
            definition = registry.get_resource(item)
        except UnknownResourceError:
            definition = None
        if definition is not None:
            return partial(self._define, definition.function)
        try:
            return partial(registry.get_composition(item), self)
        except UnknownResourceError:
            raise AttributeError(
                f"Template has no resource or composition '{item}'. "
                "Run 'pangea resources' to list supported types."
            ) from None

    def _define(self, function: Callable[..., ResourceReference], name: str,
                attributes: Optional[Dict[str, Any]] = None, /, **kwargs: Any) -> ResourceReference:
        reference = function(self.synth, name, attributes, **kwargs)
        self.references[reference.address] = reference
        return reference

    def resource(self, resource_type: str, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                 **kwargs: Any) -> ResourceReference:
        """Define a resource by type name, as used by declarative templates."""
        definition = registry.get_resource(resource_type)
        return self._define(definition.function, name, attributes, **kwargs)

    def composition(self, composition_name: str, *args: Any, **kwargs: Any) -> CompositeReference:
        return registry.get_composition(composition_name)(self, *args, **kwargs)

    def data(self, data_type: str, name: str, attributes: Optional[Dict[str, Any]] = None, /,
             **kwargs: Any) -> BlockContext:
        """
        Declare a data source; returns the open block for further attributes.

        Example:
            t.data("aws_ami", "ubuntu", most_recent=True, owners=["099720109477"])
        """
        with self.synth.data(data_type, name) as block:
            block.update(merge_attributes(attributes, kwargs))
        return block

    def provider(self, name: str, attributes: Optional[Dict[str, Any]] = None, **kwargs: Any) -> BlockContext:
        with self.synth.provider(name) as block:
            block.update(merge_attributes(attributes, kwargs))
        return block

    def variable(self, name: str, **attributes: Any) -> str:
        """Declare an input variable and return its ``${var.name}`` interpolation."""
        with self.synth.variable(name) as block:
            block.update(attributes)
        return self.synth.var(name)

    def output(self, name: str, value: Any, **attributes: Any) -> None:
        with self.synth.output(name) as block:
            block.set("value", value)
            block.update(attributes)

    def locals(self, **values: Any) -> Dict[str, str]:
        """Add local values and return their interpolations by name."""
        with self.synth.locals() as block:
            block.update(values)
        return {key: self.synth.local(key) for key in values}

    def terraform(self, **attributes: Any) -> BlockContext:
        with self.synth.terraform() as block:
            block.update(attributes)
        return block

    def resource_addresses(self) -> List[str]:
        return self.synth.resource_addresses()

    @property
    def synthesis(self) -> Dict[str, Any]:
        return self.synth.synthesis

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.synth.to_json(indent=indent)

    def __repr__(self) -> str:
        return f"Template(name={self.name!r}, resources={len(self.references)})"
