"""Load template definitions from YAML or JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List

import yaml
from pydantic import ValidationError

from ..contracts import Template
from ..errors import TemplateDefinitionError
from .store import TemplateCatalog

logger = logging.getLogger(__name__)

BUILTIN_DIR = Path(__file__).parent / "builtin"
TEMPLATE_SUFFIXES = (".yaml", ".yml", ".json")


def _read(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def parse_templates(data: Any, source: str = "<data>") -> List[Template]:
    """Validate raw template data.

    ``data`` may be a single template mapping, a list of them or a mapping
    with a ``templates`` list.
    """
    if data is None:
        return []
    if isinstance(data, dict) and "templates" in data:
        data = data["templates"]
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise TemplateDefinitionError(f"{source}: expected a template or a list of templates")

    templates = []
    for index, raw in enumerate(data):
        try:
            templates.append(Template.model_validate(raw))
        except ValidationError as exc:
            template_id = raw.get("id", index) if isinstance(raw, dict) else index
            raise TemplateDefinitionError(
                f"{source}: invalid template {template_id}: {exc}"
            ) from exc
    return templates


def load_templates_from_path(path: str | Path) -> List[Template]:
    """Load every template file in ``path`` (a file or a directory)."""
    path = Path(path).expanduser()
    if not path.exists():
        raise TemplateDefinitionError(f"Template path does not exist: {path}")
    files = (
        sorted(p for p in path.iterdir() if p.suffix in TEMPLATE_SUFFIXES)
        if path.is_dir()
        else [path]
    )
    templates: List[Template] = []
    for file in files:
        try:
            data = _read(file)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
            raise TemplateDefinitionError(f"{file}: cannot read templates: {exc}") from exc
        loaded = parse_templates(data, source=str(file))
        logger.debug(f"Loaded {len(loaded)} templates from {file}")
        templates.extend(loaded)
    return templates


def load_catalog(
    paths: Iterable[str | Path] = (), include_builtin: bool = True
) -> TemplateCatalog:
    """Build a catalog from the built-in templates and extra ``paths``."""
    templates: List[Template] = []
    if include_builtin:
        templates.extend(load_templates_from_path(BUILTIN_DIR))
    for path in paths:
        templates.extend(load_templates_from_path(path))
    catalog = TemplateCatalog(templates)
    logger.info(f"Template catalog loaded with {len(catalog)} templates")
    return catalog
