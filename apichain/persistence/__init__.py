"""Storage for saved workflow documents.

A workflow document (steps, request templates, extractions and auth) is
stored whole under its id. Execution results are never persisted.
"""

from __future__ import annotations

import os
from typing import Optional

from ..config import ApichainConfig, load_config
from .inmemory import InMemoryWorkflowRepository
from .repository import WorkflowRepository
from .sqlite import SQLiteWorkflowRepository

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresWorkflowRepository
except ImportError:  # pragma: no cover - optional dependency
    PostgresWorkflowRepository = None  # type: ignore

_repository_instance: WorkflowRepository | None = None

SQLITE_PREFIX = "sqlite://"
POSTGRES_PREFIXES = ("postgres://", "postgresql://")


def _resolve_database_url(
    database_url: Optional[str], config: Optional[ApichainConfig]
) -> Optional[str]:
    if database_url:
        return database_url
    env_url = os.getenv("APICHAIN_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return (config or load_config()).database_url


def get_repository(
    database_url: Optional[str] = None, config: Optional[ApichainConfig] = None
) -> WorkflowRepository:
    """Return the workflow document store for ``database_url``.

    Without arguments the store opened by a previous call is reused. The URL
    comes from the argument, ``APICHAIN_DATABASE_URL``/``DATABASE_URL`` or the
    loaded config, in that order. ``sqlite://PATH`` keeps documents in a local
    file, ``postgres(ql)://`` in a JSONB table, and no URL keeps them in
    process memory only.
    """
    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    url = _resolve_database_url(database_url, config)
    if not url:
        repo: WorkflowRepository = InMemoryWorkflowRepository()
    elif url.startswith(SQLITE_PREFIX):
        repo = SQLiteWorkflowRepository(url[len(SQLITE_PREFIX) :])
    elif url.startswith(POSTGRES_PREFIXES):
        if PostgresWorkflowRepository is None:
            raise RuntimeError(
                "Storing workflows in PostgreSQL requires asyncpg: "
                "pip install 'apichain[postgres]'"
            )
        repo = PostgresWorkflowRepository(url)
    else:
        raise ValueError(f"Cannot store workflows at {url}: expected sqlite:// or postgres://")

    _repository_instance = repo
    return repo


__all__ = [
    "WorkflowRepository",
    "SQLiteWorkflowRepository",
    "PostgresWorkflowRepository",
    "InMemoryWorkflowRepository",
    "get_repository",
]
