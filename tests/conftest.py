"""Shared fakes for hyperflow tests."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional, Sequence

import pytest

import hyperflow.catalog as catalog_module
import hyperflow.persistence as persistence
from hyperflow.catalog import load_catalog
from hyperflow.config import GenerationConfig
from hyperflow.contracts import ChatMessage
from hyperflow.generation import ChatOptions, GenerationOrchestrator


class FakeGenerationClient:
    """Scripted generation provider recording every call.

    ``responses`` are returned in order; the last one repeats. Exception
    instances are raised instead of returned.
    """

    def __init__(
        self,
        responses: Sequence[object] = ("generated text",),
        chunks: Optional[Sequence[str]] = None,
        delay: float = 0.0,
    ) -> None:
        self.responses = list(responses)
        self.chunks = list(chunks) if chunks is not None else None
        self.delay = delay
        self.calls: List[tuple[List[ChatMessage], ChatOptions]] = []

    @property
    def prompts(self) -> List[str]:
        return [messages[-1].content for messages, _ in self.calls]

    def _next(self) -> object:
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        return self.responses[index]

    async def chat(self, messages: List[ChatMessage], options: ChatOptions) -> str:
        self.calls.append((list(messages), options))
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self._next()
        if isinstance(response, BaseException):
            raise response
        return str(response)

    async def stream_chat(
        self, messages: List[ChatMessage], options: ChatOptions
    ) -> AsyncIterator[str]:
        self.calls.append((list(messages), options))
        chunks = self.chunks if self.chunks is not None else [str(self._next())]
        for chunk in chunks:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield chunk


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def orchestrator(fake_client: FakeGenerationClient) -> GenerationOrchestrator:
    return GenerationOrchestrator(fake_client, GenerationConfig(timeout=5.0))


@pytest.fixture
def builtin_catalog():
    return load_catalog()


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch, tmp_path):
    """Isolate module-level singletons and config lookup per test."""
    monkeypatch.setenv("HYPERFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("HYPERFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("HYPERFLOW_DEFAULT_MODEL", raising=False)
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.setattr(catalog_module, "_catalog_instance", None)


@pytest.fixture
def make_client():
    """The fake provider class, for tests that script their own responses."""
    return FakeGenerationClient
