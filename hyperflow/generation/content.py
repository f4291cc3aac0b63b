"""Single-shot content generation (study guides, FAQs, slides, ...)."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..binder import BindContext, bind
from ..catalog import TemplateCatalog
from ..constants import SOURCE_SEPARATOR
from ..errors import HyperflowError, TemplateNotFoundError
from .orchestrator import GenerationOrchestrator
from .parsing import GenerationResult

logger = logging.getLogger(__name__)


class ContentGenerator:
    """Generate structured content from ``content`` templates and sources."""

    def __init__(self, catalog: TemplateCatalog, orchestrator: GenerationOrchestrator) -> None:
        self.catalog = catalog
        self.orchestrator = orchestrator

    def content_types(self) -> list[str]:
        return [t.id for t in self.catalog.list_templates(kind="content")]

    async def generate(
        self,
        content_type: str,
        sources: Sequence[str],
        custom_prompt: Optional[str] = None,
        values: Optional[Mapping[str, Any]] = None,
        model: Optional[str] = None,
        context: Optional[BindContext] = None,
    ) -> GenerationResult:
        template = self.catalog[content_type]
        if template.kind != "content":
            raise TemplateNotFoundError(content_type)

        sources = [s for s in sources if s and s.strip()]
        if not sources and not custom_prompt:
            raise HyperflowError("No sources or custom prompt provided")

        # Source text is inserted after binding so braces inside it stay literal.
        instructions = bind(template.body or "", values or {}, context=context)
        prompt = custom_prompt or instructions
        if sources:
            prompt = f"{prompt}\n\nSources:\n\n{SOURCE_SEPARATOR.join(sources)}"

        logger.info(f"Generating {content_type} from {len(sources)} sources")
        return await self.orchestrator.complete(
            prompt,
            output_format=template.output_format,
            system_prompt=instructions if custom_prompt else None,
            model=model,
        )
