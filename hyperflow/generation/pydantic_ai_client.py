"""Generation client backed by pydantic-ai agents."""

from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Tuple

from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from ..contracts import ChatMessage
from ..errors import GenerationFailure
from .base import ChatOptions

logger = logging.getLogger(__name__)


def _split_messages(
    messages: List[ChatMessage], system_prompt: Optional[str]
) -> Tuple[str, List[ModelMessage]]:
    """Return the final user prompt and the preceding history."""
    if not messages or messages[-1].role != "user":
        raise GenerationFailure("The last chat message must come from the user")

    *earlier, last = messages
    history: List[ModelMessage] = []
    for message in earlier:
        if message.role == "assistant":
            history.append(ModelResponse(parts=[TextPart(content=message.content)]))
        elif message.role == "system":
            history.append(ModelRequest(parts=[SystemPromptPart(content=message.content)]))
        else:
            history.append(ModelRequest(parts=[UserPromptPart(content=message.content)]))

    # Agents only add their own system prompt to a fresh conversation.
    if history and system_prompt:
        history.insert(0, ModelRequest(parts=[SystemPromptPart(content=system_prompt)]))
    return last.content, history


class PydanticAIClient:
    """Run chat completions through a throwaway :class:`pydantic_ai.Agent`.

    Args:
        model: Pin every call to this model (a pydantic-ai model name or
            ``Model`` instance) instead of the id requested per call.
    """

    def __init__(self, model: str | Model | None = None) -> None:
        self._model = model

    def _prepare(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> Tuple[Agent, str, dict]:
        prompt, history = _split_messages(messages, options.system_prompt)
        system_prompt = options.system_prompt if not history and options.system_prompt else ()
        agent = Agent(system_prompt=system_prompt)

        settings: ModelSettings = {}
        if options.max_tokens is not None:
            settings["max_tokens"] = options.max_tokens
        if options.temperature is not None:
            settings["temperature"] = options.temperature

        model = self._model or options.model
        if model is None:
            raise GenerationFailure("No model configured for generation")
        kwargs = {
            "message_history": history or None,
            "model": model,
            "model_settings": settings or None,
        }
        return agent, prompt, kwargs

    async def chat(self, messages: List[ChatMessage], options: ChatOptions) -> str:
        agent, prompt, kwargs = self._prepare(messages, options)
        logger.debug(f"Running chat completion with model {kwargs['model']}")
        result = await agent.run(prompt, **kwargs)
        return result.output

    async def stream_chat(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> AsyncIterator[str]:
        agent, prompt, kwargs = self._prepare(messages, options)
        logger.debug(f"Streaming chat completion with model {kwargs['model']}")
        async with agent.run_stream(prompt, **kwargs) as result:
            async for chunk in result.stream_text(delta=True):
                if chunk:
                    yield chunk
