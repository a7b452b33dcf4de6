"""Pydantic models for declarative template documents."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ResourceSpec(BaseModel):
    """One resource entry of a declarative template."""
    type: str = Field(..., description="Registered resource type, e.g. aws_vpc")
    name: str = Field(..., description="Resource name, unique per type")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Attributes passed to the resource function")

    class Config:
        """Pydantic config."""
        extra = "forbid"


class CompositionSpec(BaseModel):
    """One composition entry of a declarative template."""
    composition: str = Field(..., description="Registered composition name")
    args: Dict[str, Any] = Field(default_factory=dict, description="Keyword arguments for the composition")

    class Config:
        """Pydantic config."""
        extra = "forbid"


class TemplateDocument(BaseModel):
    """Declarative template: typed resources plus pass-through Terraform sections."""
    name: Optional[str] = Field(None, description="Template name")
    resources: List[ResourceSpec] = Field(default_factory=list, description="Resources in definition order")
    compositions: List[CompositionSpec] = Field(default_factory=list, description="Compositions to expand")
    terraform: Dict[str, Any] = Field(default_factory=dict, description="terraform block")
    provider: Dict[str, Any] = Field(default_factory=dict, description="Provider blocks by provider name")
    variable: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Variables by name")
    locals: Dict[str, Any] = Field(default_factory=dict, description="Local values")
    data: Dict[str, Dict[str, Dict[str, Any]]] = Field(default_factory=dict, description="Data sources by type and name")
    output: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Outputs by name")

    class Config:
        """Pydantic config."""
        extra = "forbid"
