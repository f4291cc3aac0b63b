"""Scripted automation sandbox for testing."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Sequence, Union

from .base import AutomationEvent, BaseAutomation


class ScriptedAutomation(BaseAutomation):
    """Replay a fixed list of events for every execution.

    Exception instances in ``events`` are raised at their position, which
    simulates a sandbox dying mid-stream.
    """

    def __init__(
        self,
        events: Sequence[Union[AutomationEvent, BaseException]] = (),
        delay: float = 0.0,
    ) -> None:
        self.events = list(events)
        self.delay = delay
        self.executed: List[str] = []

    async def execute(self, code: str) -> AsyncIterator[AutomationEvent]:
        self.executed.append(code)
        for event in self.events:
            if self.delay:
                await asyncio.sleep(self.delay)
            if isinstance(event, BaseException):
                raise event
            yield event
