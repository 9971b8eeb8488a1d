"""Persistence layer for execution contexts."""

from __future__ import annotations

import os
from typing import Optional

from ..config import VibeflowConfig, load_config
from .inmemory import InMemoryMemoryRepository
from .postgres import PostgresMemoryRepository
from .repository import MemoryRepository
from .sqlite import SQLiteMemoryRepository

_repository_instance: MemoryRepository | None = None


def get_repository(
    database_url: Optional[str] = None, config: Optional[VibeflowConfig] = None
) -> MemoryRepository:
    """Factory function to obtain a memory repository.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``VIBEFLOW_DATABASE_URL``, or from
    loaded configuration. When no database is configured, an in-memory
    repository is returned.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("VIBEFLOW_DATABASE_URL")
        or getattr(config, "database_url", None)
    )

    if not database_url:
        _repository_instance = InMemoryMemoryRepository()
        return _repository_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _repository_instance = SQLiteMemoryRepository(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        _repository_instance = PostgresMemoryRepository(database_url)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _repository_instance


__all__ = [
    "InMemoryMemoryRepository",
    "MemoryRepository",
    "PostgresMemoryRepository",
    "SQLiteMemoryRepository",
    "get_repository",
]
