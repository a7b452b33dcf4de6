"""Validate declarative template structure."""

from typing import Any, Dict, List
from ..utils.errors import TemplateLoadError
from ..utils.logging import get_logger

logger = get_logger("loader.template_validator")

SECTIONS = ["name", "resources", "compositions", "terraform", "provider", "variable", "locals", "data", "output"]
MAPPING_SECTIONS = ["terraform", "provider", "variable", "locals", "data", "output"]


def validate_template_structure(document: Dict[str, Any]) -> None:
    """
    Validate the shape of a declarative template document.

    Args:
        document: Parsed YAML or JSON template

    Raises:
        TemplateLoadError: If the structure is invalid
    """
    if not isinstance(document, dict):
        raise TemplateLoadError(
            "Template must be a mapping at the top level. "
            "Expected keys such as 'resources', 'provider' or 'variable'."
        )

    unknown = [key for key in document if key not in SECTIONS]
    if unknown:
        raise TemplateLoadError(
            f"Template has unknown sections: {', '.join(sorted(unknown))}. "
            f"Supported sections: {', '.join(SECTIONS)}"
        )

    for section in MAPPING_SECTIONS:
        if section in document and not isinstance(document[section], dict):
            raise TemplateLoadError(f"Template section '{section}' must be a mapping")

    resources = document.get("resources", [])
    if not isinstance(resources, list):
        raise TemplateLoadError(
            "Template 'resources' must be a list of {type, name, attributes} entries"
        )

    problems: List[str] = []
    seen = set()
    for index, resource in enumerate(resources):
        problems.extend(f"resources[{index}]: {warning}" for warning in validate_resource_entry(resource))
        if isinstance(resource, dict):
            address = f"{resource.get('type')}.{resource.get('name')}"
            if address in seen:
                problems.append(f"resources[{index}]: duplicate resource {address}")
            seen.add(address)
    if problems:
        raise TemplateLoadError(f"Invalid template resources: {'; '.join(problems)}")

    if not resources and not document.get("compositions"):
        logger.warning("Template defines no resources")

    logger.debug("Template structure validation passed")


def validate_resource_entry(resource: Any) -> List[str]:
    """
    Validate a single resource entry.

    Returns:
        List of problems (empty if valid)
    """
    if not isinstance(resource, dict):
        return ["resource entry must be a mapping"]

    problems = []
    missing = [field for field in ("type", "name") if not resource.get(field)]
    if missing:
        problems.append(f"missing required fields: {', '.join(missing)}")
    for field in ("type", "name"):
        if field in resource and not isinstance(resource[field], str):
            problems.append(f"'{field}' must be a string")
    if "attributes" in resource and not isinstance(resource["attributes"], dict):
        problems.append("'attributes' must be a mapping")
    extra = [key for key in resource if key not in ("type", "name", "attributes")]
    if extra:
        problems.append(f"unknown fields: {', '.join(sorted(extra))}")
    return problems
