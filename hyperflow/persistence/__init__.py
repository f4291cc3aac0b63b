"""Persistence layer for hyperflow runs and executions."""

from __future__ import annotations

import os
from typing import Optional

from ..config import HyperflowConfig, load_config
from .inmemory import InMemoryRunRepository
from .repository import RunRepository
from .sqlite import SQLiteRunRepository

_repository_instance: RunRepository | None = None


def get_repository(
    database_url: Optional[str] = None, config: Optional[HyperflowConfig] = None
) -> RunRepository:
    """Factory function to obtain a run repository.

    The backend is selected from ``database_url``, which can be provided
    explicitly, via the ``HYPERFLOW_DATABASE_URL`` environment variable or
    from loaded configuration. Without a database an in-memory repository is
    returned.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("HYPERFLOW_DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        _repository_instance = InMemoryRunRepository()
    elif database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _repository_instance = SQLiteRunRepository(path)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _repository_instance


__all__ = [
    "InMemoryRunRepository",
    "RunRepository",
    "SQLiteRunRepository",
    "get_repository",
]
