"""Generation Orchestrator: bind a prompt, call the provider, parse the reply."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, AsyncIterator, List, Mapping, Optional

from ..binder import BindContext, bind
from ..config import GenerationConfig
from ..constants import JSON_ONLY_INSTRUCTION
from ..contracts import ChatMessage
from ..errors import GenerationFailure
from .base import ChatOptions, GenerationClient
from .parsing import GenerationResult, OutputFormat, parse_response

logger = logging.getLogger(__name__)


def compute_backoff(attempt: int, base: float = 0.5, cap: float = 8.0) -> float:
    """Delay before retry number ``attempt`` (0-based), with full jitter."""
    return random.uniform(0, min(cap, base * 2**attempt))


def compose_system_prompt(
    system_prompt: Optional[str], output_format: Optional[OutputFormat]
) -> Optional[str]:
    """Add the JSON-only instruction when structured output is requested."""
    if output_format != "json":
        return system_prompt
    if system_prompt:
        return f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}"
    return JSON_ONLY_INSTRUCTION


class GenerationOrchestrator:
    """Drive one generation request through a :class:`GenerationClient`.

    Provider errors and timeouts are raised as :class:`GenerationFailure`.
    Unparseable JSON is not an error: the result degrades to ``{"raw": text}``.
    """

    def __init__(
        self, client: GenerationClient, config: Optional[GenerationConfig] = None
    ) -> None:
        self.client = client
        self.config = config or GenerationConfig()

    def options(
        self, system_prompt: Optional[str], model: Optional[str]
    ) -> ChatOptions:
        return ChatOptions(
            system_prompt=system_prompt,
            model=model or self.config.default_model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )

    async def _chat_once(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> str:
        try:
            return await asyncio.wait_for(
                self.client.chat(messages, options), timeout=self.config.timeout
            )
        except asyncio.TimeoutError as exc:
            raise GenerationFailure(
                f"Generation timed out after {self.config.timeout}s", model=options.model
            ) from exc
        except GenerationFailure:
            raise
        except Exception as exc:
            raise GenerationFailure(
                f"Generation provider error: {exc}", model=options.model
            ) from exc

    async def chat(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> str:
        """Call the provider with retries, returning the raw response text."""
        attempts = self.config.retries + 1
        for attempt in range(attempts):
            try:
                return await self._chat_once(messages, options)
            except GenerationFailure as exc:
                logger.error(
                    f"Generation attempt {attempt + 1}/{attempts} failed: {exc}"
                )
                if attempt + 1 >= attempts:
                    raise
                await asyncio.sleep(compute_backoff(attempt))
        raise GenerationFailure("Generation was not attempted", model=options.model)

    async def complete(
        self,
        prompt: str,
        output_format: Optional[OutputFormat] = "text",
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GenerationResult:
        """Send an already bound ``prompt`` and parse the reply."""
        options = self.options(compose_system_prompt(system_prompt, output_format), model)
        text = await self.chat([ChatMessage(role="user", content=prompt)], options)
        return parse_response(text, output_format)

    async def generate(
        self,
        prompt_template: str,
        values: Mapping[str, Any],
        output_format: Optional[OutputFormat] = "text",
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        context: Optional[BindContext] = None,
    ) -> GenerationResult:
        """Bind ``prompt_template`` against ``values`` and generate a result.

        Args:
            prompt_template: Prompt containing ``{{name}}`` placeholders.
            values: Variable bag, rendered in human readable mode.
            output_format: ``markdown``, ``json`` or ``text``.
            system_prompt: Optional instructions, also bound against ``values``.
            model: Opaque model id. Defaults to the configured model.
            context: Resolves reserved tokens.
        """
        prompt = bind(prompt_template, values, context=context)
        if system_prompt:
            system_prompt = bind(system_prompt, values, context=context)
        return await self.complete(prompt, output_format, system_prompt, model)

    async def stream(
        self,
        prompt_template: str,
        values: Mapping[str, Any],
        output_format: Optional[OutputFormat] = "text",
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        context: Optional[BindContext] = None,
    ) -> AsyncIterator[str]:
        """Bind the prompt and yield provider chunks in arrival order."""
        prompt = bind(prompt_template, values, context=context)
        if system_prompt:
            system_prompt = bind(system_prompt, values, context=context)
        options = self.options(compose_system_prompt(system_prompt, output_format), model)
        async for chunk in self.stream_chat([ChatMessage(role="user", content=prompt)], options):
            yield chunk

    async def stream_chat(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> AsyncIterator[str]:
        """Forward provider chunks, converting provider errors to failures."""
        try:
            async for chunk in self.client.stream_chat(messages, options):
                yield chunk
        except GenerationFailure:
            raise
        except Exception as exc:
            logger.error(f"Generation stream failed: {exc}")
            raise GenerationFailure(
                f"Generation stream failed: {exc}", model=options.model
            ) from exc
