"""Interface to the external text generation provider."""

from __future__ import annotations

from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from ..contracts import ChatMessage


class ChatOptions(BaseModel):
    """Per-call settings. Model ids are opaque and forwarded unchanged."""

    system_prompt: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


@runtime_checkable
class GenerationClient(Protocol):
    """Protocol for chat completion providers."""

    async def chat(self, messages: List[ChatMessage], options: ChatOptions) -> str:
        """Return the complete response text."""

    def stream_chat(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> AsyncIterator[str]:
        """Yield response text chunks in arrival order.

        The iterator is single-pass and finite.
        """
