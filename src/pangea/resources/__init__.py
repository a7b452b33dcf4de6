"""Typed resource functions, their registry and compositions."""

from . import aws, composition
from .base import BaseAttributes, NestedBlock, validate_attributes
from .reference import CompositeReference, ResourceReference
from .registry import (
    ResourceDefinition,
    get_composition,
    get_resource,
    list_compositions,
    list_resources,
    register_composition,
    register_resource,
    resource_schema,
)

__all__ = [
    "aws",
    "composition",
    "BaseAttributes",
    "NestedBlock",
    "validate_attributes",
    "CompositeReference",
    "ResourceReference",
    "ResourceDefinition",
    "get_composition",
    "get_resource",
    "list_compositions",
    "list_resources",
    "register_composition",
    "register_resource",
    "resource_schema",
]
