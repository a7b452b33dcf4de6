"""Custom exception classes for Pangea."""

from typing import List, Optional


class PangeaError(Exception):
    """Base exception for all Pangea errors."""
    pass


class ConfigError(PangeaError):
    """Raised when configuration is invalid or missing."""
    pass


class TemplateLoadError(PangeaError):
    """Raised when a template file cannot be loaded or is invalid."""
    pass


class SynthesisError(PangeaError):
    """Raised when the block synthesizer is used incorrectly."""
    pass


class InvalidBlockKeyError(SynthesisError, AttributeError):
    """Raised when a top-level block type is not allowed by the synthesizer."""
    pass


class DuplicateBlockError(SynthesisError):
    """Raised when a labelled block is declared twice in one session."""
    pass


class DuplicateResourceError(DuplicateBlockError):
    """Raised when a resource name is reused for the same resource type."""
    pass


class UnknownResourceError(PangeaError):
    """Raised when a resource type or composition is not registered."""
    pass


class ResourceValidationError(PangeaError):
    """Raised when resource attributes fail schema validation."""

    def __init__(self, message: str, resource_type: Optional[str] = None,
                 name: Optional[str] = None, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.resource_type = resource_type
        self.name = name
        self.errors = errors or []


class DependencyGraphError(PangeaError):
    """Raised when the resource dependency graph is inconsistent."""
    pass


class MissingReferenceError(DependencyGraphError):
    """Raised when an interpolation points at a resource that was never defined."""
    pass


class DependencyCycleError(DependencyGraphError):
    """Raised when resources reference each other in a cycle."""
    pass
