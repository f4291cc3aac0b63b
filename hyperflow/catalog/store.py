"""Read-only in-memory catalog of templates."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Dict, List, Optional

from ..contracts import Template
from ..errors import TemplateDefinitionError, TemplateNotFoundError


class TemplateCatalog(Mapping):
    """Immutable mapping of template id to :class:`Template`.

    Built once at load time and shared by every run; nothing mutates it
    afterwards.
    """

    def __init__(self, templates: Iterable[Template] = ()) -> None:
        entries: Dict[str, Template] = {}
        for template in templates:
            if template.id in entries:
                raise TemplateDefinitionError(f"Duplicate template id: {template.id}")
            entries[template.id] = template
        self._templates = entries

    def __getitem__(self, template_id: str) -> Template:
        try:
            return self._templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def list_templates(
        self, kind: Optional[str] = None, category: Optional[str] = None
    ) -> List[Template]:
        """Return templates in load order, optionally filtered."""
        return [
            t
            for t in self._templates.values()
            if (kind is None or t.kind == kind)
            and (category is None or t.category == category)
        ]

    def find_by_trigger(self, message: str) -> Optional[Template]:
        """Return the first chat template whose trigger occurs in ``message``."""
        for template in self._templates.values():
            if template.kind == "chat" and template.trigger and template.trigger in message:
                return template
        return None

    def merged(self, templates: Iterable[Template]) -> "TemplateCatalog":
        """Return a new catalog with ``templates`` appended."""
        return TemplateCatalog([*self._templates.values(), *templates])
