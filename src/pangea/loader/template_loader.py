"""Load template files: Python modules or declarative YAML/JSON documents."""

import importlib.util
import json
import yaml
from pathlib import Path
from typing import Any, Callable, Optional
from pydantic import ValidationError
from .models import TemplateDocument
from .template_validator import validate_template_structure
from ..utils.errors import TemplateLoadError
from ..utils.logging import get_logger

logger = get_logger("loader.template_loader")

PYTHON_SUFFIXES = (".py",)
DOCUMENT_SUFFIXES = (".yaml", ".yml", ".json")


class LoadedTemplate:
    """A loaded template file, ready to be applied to a Template."""

    def __init__(self, path: Path, build: Optional[Callable[[Any], Any]] = None,
                 document: Optional[TemplateDocument] = None):
        self.path = path
        self.build = build
        self.document = document

    @property
    def kind(self) -> str:
        return "python" if self.build is not None else "document"

    @property
    def name(self) -> str:
        if self.document is not None and self.document.name:
            return self.document.name
        return self.path.stem.split(".")[0]

    def apply(self, template: Any) -> None:
        """Define this file's resources on ``template``."""
        if self.build is not None:
            self.build(template)
        else:
            apply_document(self.document, template)


def _check_path(template_path: str) -> Path:
    path = Path(template_path)
    if not path.exists():
        raise TemplateLoadError(
            f"Template file not found: {template_path}. "
            "Please check the file path and ensure the file exists."
        )
    if not path.is_file():
        raise TemplateLoadError(
            f"Path is not a file: {template_path}. "
            "Please provide a .py, .yaml, .yml or .json template."
        )
    if path.suffix not in PYTHON_SUFFIXES + DOCUMENT_SUFFIXES:
        raise TemplateLoadError(
            f"Unsupported template type '{path.suffix}' for {template_path}. "
            "Supported: .py, .yaml, .yml, .json"
        )
    return path


def load_python_template(path: Path) -> LoadedTemplate:
    """
    Import a Python template and return its ``build(template)`` function.

    Raises:
        TemplateLoadError: If the module cannot be imported or has no build function
    """
    spec = importlib.util.spec_from_file_location(f"pangea_template_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise TemplateLoadError(f"Cannot import template {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise TemplateLoadError(f"Error importing template {path}: {e}") from e

    build = getattr(module, "build", None)
    if not callable(build):
        raise TemplateLoadError(
            f"Template {path} must define a build(template) function"
        )
    return LoadedTemplate(path, build=build)


def load_document_template(path: Path) -> LoadedTemplate:
    """
    Parse and validate a declarative YAML or JSON template.

    Raises:
        TemplateLoadError: If the file cannot be parsed or is invalid
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix == ".json":
                raw = json.load(f)
            else:
                raw = yaml.safe_load(f) or {}
    except json.JSONDecodeError as e:
        raise TemplateLoadError(f"Invalid JSON in template {path}: {e}") from e
    except yaml.YAMLError as e:
        raise TemplateLoadError(f"Invalid YAML in template {path}: {e}") from e
    except OSError as e:
        raise TemplateLoadError(
            f"Error reading template {path}: {e}. "
            "Please check file permissions and try again."
        ) from e

    validate_template_structure(raw)
    try:
        document = TemplateDocument.model_validate(raw)
    except ValidationError as e:
        raise TemplateLoadError(f"Invalid template {path}: {e}") from e

    logger.info(f"Loaded template {path} ({len(document.resources)} resources, "
                f"{len(document.compositions)} compositions)")
    return LoadedTemplate(path, document=document)


def load_template(template_path: str) -> LoadedTemplate:
    """
    Load a template file.

    Args:
        template_path: Path to a .py, .yaml, .yml or .json template

    Returns:
        LoadedTemplate

    Raises:
        TemplateLoadError: If the file is missing, unsupported or invalid
    """
    path = _check_path(template_path)
    if path.suffix in PYTHON_SUFFIXES:
        return load_python_template(path)
    return load_document_template(path)


def apply_document(document: TemplateDocument, template: Any) -> None:
    """Write a declarative document into a Template, sections first, then resources."""
    if document.terraform:
        template.terraform(**document.terraform)
    for provider_name, bodies in document.provider.items():
        for body in bodies if isinstance(bodies, list) else [bodies]:
            template.provider(provider_name, body or {})
    for variable_name, body in document.variable.items():
        template.variable(variable_name, **(body or {}))
    if document.locals:
        template.locals(**document.locals)
    for data_type, by_name in document.data.items():
        for data_name, body in by_name.items():
            template.data(data_type, data_name, body or {})

    for entry in document.compositions:
        template.composition(entry.composition, **entry.args)
    for resource in document.resources:
        template.resource(resource.type, resource.name, dict(resource.attributes))

    for output_name, body in document.output.items():
        body = dict(body or {})
        if "value" not in body:
            raise TemplateLoadError(f"Output '{output_name}' must have a value")
        template.output(output_name, body.pop("value"), **body)

