"""References to synthesized resources."""

from typing import Any, Dict, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, Field
from .computed import ComputedAttributes, computed_view
from ..synthesizer.terraform import interpolation


class ResourceReference(BaseModel):
    """
    Handle returned by every resource function.

    Outputs and computed properties are available as attributes:
    ``vpc.id`` is ``"${aws_vpc.main.id}"`` and ``vpc.is_private_cidr`` is
    derived from the validated attributes. ``ref(attr)`` builds the
    interpolation for any attribute, listed in ``outputs`` or not.
    """
    type: str = Field(..., description="Terraform resource type")
    name: str = Field(..., description="Resource name, unique per type")
    resource_attributes: Dict[str, Any] = Field(default_factory=dict, description="Validated attributes without unset values")
    outputs: Dict[str, str] = Field(default_factory=dict, description="Output name to interpolation string")
    computed: Dict[str, Any] = Field(default_factory=dict, description="Computed properties")

    class Config:
        """Pydantic config."""
        frozen = True

    @classmethod
    def build(cls, resource_type: str, name: str, attributes: Any,
              outputs: Union[Iterable[str], Mapping[str, str]] = ("id",)) -> "ResourceReference":
        """
        Build a reference from validated attributes.

        Args:
            resource_type: Terraform resource type
            name: Resource name
            attributes: BaseAttributes record or plain mapping
            outputs: Output names, or a mapping of output name to the
                attribute it interpolates

        Returns:
            ResourceReference with outputs and computed properties filled in
        """
        if hasattr(attributes, "to_dict"):
            attributes = attributes.to_dict()
        attributes = dict(attributes or {})
        if isinstance(outputs, Mapping):
            pairs = list(outputs.items())
        else:
            pairs = [(output, output) for output in outputs]
        view = computed_view(resource_type, attributes)
        return cls(
            type=resource_type,
            name=name,
            resource_attributes=attributes,
            outputs={output: interpolation(resource_type, name, attribute) for output, attribute in pairs},
            computed=view.as_dict() if view is not None else {},
        )

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def ref(self, attribute: str) -> str:
        """Interpolation string for any attribute of this resource."""
        return interpolation(self.type, self.name, attribute)

    def computed_attributes(self) -> Optional[ComputedAttributes]:
        return computed_view(self.type, self.resource_attributes)

    def __terraform__(self) -> str:
        return self.ref("id")

    def __getattr__(self, item: str) -> Any:
        if item.startswith("_"):
            return super().__getattr__(item)
        outputs: Mapping[str, str] = self.__dict__.get("outputs") or {}
        if item in outputs:
            return outputs[item]
        computed: Mapping[str, Any] = self.__dict__.get("computed") or {}
        if item in computed:
            return computed[item]
        raise AttributeError(
            f"{self.__dict__.get('type')}.{self.__dict__.get('name')} has no output or "
            f"computed attribute '{item}'; use ref('{item}') for other attributes"
        )

    def __str__(self) -> str:
        return self.ref("id")


class CompositeReference(BaseModel):
    """Base for the grouped references returned by compositions."""
    name: str

    class Config:
        """Pydantic config."""
        frozen = True

    def all_references(self) -> Dict[str, ResourceReference]:
        """Flatten every component into ``address -> reference``."""
        found: Dict[str, ResourceReference] = {}

        def collect(value: Any) -> None:
            if isinstance(value, ResourceReference):
                found[value.address] = value
            elif isinstance(value, dict):
                for item in value.values():
                    collect(item)
            elif isinstance(value, (list, tuple)):
                for item in value:
                    collect(item)

        for field_name in type(self).model_fields:
            collect(getattr(self, field_name))
        return found
