"""Chat-trigger selection and system prompt assembly."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Mapping, Optional

from pydantic import BaseModel

from .binder import BindContext, bind
from .catalog import TemplateCatalog
from .config import GenerationConfig
from .contracts import ChatMessage
from .generation import GenerationOrchestrator

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    """Messages and system prompt ready for the generation provider."""

    messages: List[ChatMessage]
    system_prompt: str
    template_id: Optional[str] = None


class ChatAssembler:
    """Pick the system prompt for a chat turn.

    A chat template is selected when its trigger token occurs in the latest
    user message. Its body is bound against the caller's values; otherwise the
    caller's prompt or the configured default is used unchanged.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        orchestrator: Optional[GenerationOrchestrator] = None,
        config: Optional[GenerationConfig] = None,
    ) -> None:
        self.catalog = catalog
        self.orchestrator = orchestrator
        self.config = config or (orchestrator.config if orchestrator else GenerationConfig())

    def assemble(
        self,
        messages: List[ChatMessage],
        values: Optional[Mapping[str, Any]] = None,
        system_prompt: Optional[str] = None,
        context: Optional[BindContext] = None,
    ) -> ChatRequest:
        latest = next((m.content for m in reversed(messages) if m.role == "user"), "")
        template = self.catalog.find_by_trigger(latest)
        if template is None:
            return ChatRequest(
                messages=list(messages),
                system_prompt=system_prompt or self.config.chat_system_prompt,
            )

        logger.info(f"Chat trigger matched template {template.id}")
        return ChatRequest(
            messages=list(messages),
            system_prompt=bind(template.body, values or {}, context=context),
            template_id=template.id,
        )

    async def stream(
        self,
        messages: List[ChatMessage],
        values: Optional[Mapping[str, Any]] = None,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        context: Optional[BindContext] = None,
    ) -> AsyncIterator[str]:
        """Assemble the request and yield response chunks in arrival order."""
        if self.orchestrator is None:
            raise RuntimeError("ChatAssembler.stream needs an orchestrator")
        request = self.assemble(messages, values, system_prompt, context)
        options = self.orchestrator.options(request.system_prompt, model)
        async for chunk in self.orchestrator.stream_chat(request.messages, options):
            yield chunk
