"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

from typing import Any

import asyncpg

from ..contracts import WorkflowDocument, WorkflowDraft
from ..errors import WorkflowNotFoundError
from .repository import WorkflowRepository, apply_updates, new_document


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist workflow documents using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                document JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def create_workflow(self, draft: WorkflowDraft) -> WorkflowDocument:
        document = new_document(draft)
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO workflows (id, name, document, created_at, updated_at) VALUES ($1, $2, $3, $4, $5)",
                document.id,
                document.name,
                document.model_dump_json(by_alias=True),
                document.created_at,
                document.updated_at,
            )
        finally:
            await conn.close()
        return document

    async def get_workflow(self, workflow_id: str) -> WorkflowDocument | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM workflows WHERE id = $1", workflow_id
            )
        finally:
            await conn.close()
        if not row:
            return None
        return WorkflowDocument.model_validate_json(row["document"])

    async def update_workflow(self, workflow_id: str, **updates: Any) -> WorkflowDocument:
        existing = await self.get_workflow(workflow_id)
        if existing is None:
            raise WorkflowNotFoundError(workflow_id)
        updated = apply_updates(existing, updates)
        conn = await self._connect()
        try:
            await conn.execute(
                "UPDATE workflows SET name = $1, document = $2, updated_at = $3 WHERE id = $4",
                updated.name,
                updated.model_dump_json(by_alias=True),
                updated.updated_at,
                workflow_id,
            )
        finally:
            await conn.close()
        return updated

    async def delete_workflow(self, workflow_id: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute("DELETE FROM workflows WHERE id = $1", workflow_id)
        finally:
            await conn.close()

    async def list_workflows(self) -> list[WorkflowDocument]:
        conn = await self._connect()
        try:
            rows = await conn.fetch("SELECT document FROM workflows ORDER BY created_at")
        finally:
            await conn.close()
        return [WorkflowDocument.model_validate_json(r["document"]) for r in rows]
