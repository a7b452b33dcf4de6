"""Registry of resource functions and compositions."""

from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, Field
from .base import BaseAttributes
from ..utils.errors import PangeaError, UnknownResourceError
from ..utils.logging import get_logger

logger = get_logger("resources.registry")


class ResourceDefinition(BaseModel):
    """Registered resource function and its attribute schema."""
    resource_type: str = Field(..., description="Terraform resource type")
    schema_class: Type[BaseAttributes] = Field(..., description="Attribute schema")
    function: Callable[..., Any] = Field(..., description="Resource function")
    category: str = Field("general", description="Catalogue grouping")
    outputs: List[str] = Field(default_factory=list, description="Outputs exposed on the reference")

    class Config:
        """Pydantic config."""
        arbitrary_types_allowed = True
        frozen = True

    @property
    def description(self) -> str:
        doc = (self.function.__doc__ or "").strip()
        return doc.splitlines()[0] if doc else ""


_RESOURCES: Dict[str, ResourceDefinition] = {}
_COMPOSITIONS: Dict[str, Callable[..., Any]] = {}


def register_resource(resource_type: str, schema: Type[BaseAttributes], category: str = "general",
                      outputs: Optional[List[str]] = None) -> Callable:
    """
    Decorator recording a resource function under its Terraform type.

    Raises:
        PangeaError: If the type is already registered to another function
    """
    def decorator(function: Callable[..., Any]) -> Callable[..., Any]:
        existing = _RESOURCES.get(resource_type)
        if existing is not None and existing.function is not function:
            raise PangeaError(f"Resource type '{resource_type}' is already registered")
        _RESOURCES[resource_type] = ResourceDefinition(
            resource_type=resource_type,
            schema_class=schema,
            function=function,
            category=category,
            outputs=list(outputs or ["id"]),
        )
        logger.debug(f"Registered resource {resource_type}")
        return function
    return decorator


def register_composition(name: str) -> Callable:
    """Decorator recording a composition function under ``name``."""
    def decorator(function: Callable[..., Any]) -> Callable[..., Any]:
        if name in _RESOURCES:
            raise PangeaError(f"Composition '{name}' clashes with a resource type")
        _COMPOSITIONS[name] = function
        logger.debug(f"Registered composition {name}")
        return function
    return decorator


def get_resource(resource_type: str) -> ResourceDefinition:
    """
    Look up a registered resource.

    Raises:
        UnknownResourceError: If the type is not registered
    """
    definition = _RESOURCES.get(resource_type)
    if definition is None:
        raise UnknownResourceError(
            f"Unknown resource type '{resource_type}'. "
            "Run 'pangea resources' to list supported types."
        )
    return definition


def get_composition(name: str) -> Callable[..., Any]:
    composition = _COMPOSITIONS.get(name)
    if composition is None:
        raise UnknownResourceError(f"Unknown composition '{name}'")
    return composition


def list_resources(category: Optional[str] = None) -> List[ResourceDefinition]:
    """Registered resources sorted by type, optionally filtered by category."""
    definitions = sorted(_RESOURCES.values(), key=lambda d: d.resource_type)
    if category:
        definitions = [d for d in definitions if d.category == category]
    return definitions


def list_compositions() -> List[str]:
    return sorted(_COMPOSITIONS)


def resource_schema(resource_type: str) -> Dict[str, Any]:
    """JSON schema of a resource's attributes."""
    return get_resource(resource_type).schema_class.model_json_schema()
