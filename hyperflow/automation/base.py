"""Interface to the external browser-automation collaborator."""

from __future__ import annotations

import abc
from typing import Any, AsyncIterator, List, Optional, Union

from pydantic import BaseModel


class AutomationPayload(BaseModel):
    """Terminal output reported by a script. ``type`` is not yet validated."""

    type: str = "json"
    title: str = ""
    data: Any = None
    columns: Optional[List[str]] = None


class AutomationFailed(BaseModel):
    """Terminal error reported by the automation sandbox."""

    message: str


#: A plain string is a log line, unless it carries the ``OUTPUT:`` prefix.
AutomationEvent = Union[str, AutomationPayload, AutomationFailed]


class BaseAutomation(metaclass=abc.ABCMeta):
    """Abstract base for automation sandboxes."""

    async def connect(self) -> None:
        """Open a session with the sandbox (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close the sandbox session (no-op by default)."""
        pass

    @abc.abstractmethod
    def execute(self, code: str) -> AsyncIterator[AutomationEvent]:
        """Run ``code`` and yield events in arrival order.

        The stream ends after a terminal event. Raising from the iterator
        counts as a terminal error.
        """
        raise NotImplementedError
