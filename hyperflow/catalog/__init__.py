"""Template catalog and loading."""

from __future__ import annotations

from typing import Optional

from ..config import HyperflowConfig, load_config
from .loader import load_catalog, load_templates_from_path, parse_templates
from .store import TemplateCatalog

_catalog_instance: TemplateCatalog | None = None


def get_catalog(config: Optional[HyperflowConfig] = None) -> TemplateCatalog:
    """Return the process-wide catalog, loading it on first use.

    Passing ``config`` always reloads from the configured paths.
    """

    global _catalog_instance
    if _catalog_instance is not None and config is None:
        return _catalog_instance

    config = config or load_config()
    _catalog_instance = load_catalog(
        config.catalog.paths, include_builtin=config.catalog.include_builtin
    )
    return _catalog_instance


__all__ = [
    "TemplateCatalog",
    "get_catalog",
    "load_catalog",
    "load_templates_from_path",
    "parse_templates",
]
