"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

from ..contracts import WorkflowDocument, WorkflowDraft
from ..errors import WorkflowNotFoundError
from .repository import WorkflowRepository, apply_updates, new_document


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflow documents using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                document TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_workflows_updated_at ON workflows (updated_at)"
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()
        return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Repository API
    async def create_workflow(self, draft: WorkflowDraft) -> WorkflowDocument:
        document = new_document(draft)
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO workflows (id, name, document, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            document.id,
            document.name,
            document.model_dump_json(by_alias=True),
            document.created_at.isoformat(),
            document.updated_at.isoformat(),
        )
        return document

    async def get_workflow(self, workflow_id: str) -> WorkflowDocument | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM workflows WHERE id = ?",
            workflow_id,
        )
        if not row:
            return None
        return WorkflowDocument.model_validate_json(row["document"])

    async def update_workflow(self, workflow_id: str, **updates: Any) -> WorkflowDocument:
        existing = await self.get_workflow(workflow_id)
        if existing is None:
            raise WorkflowNotFoundError(workflow_id)
        updated = apply_updates(existing, updates)
        await asyncio.to_thread(
            self._execute,
            "UPDATE workflows SET name = ?, document = ?, updated_at = ? WHERE id = ?",
            updated.name,
            updated.model_dump_json(by_alias=True),
            updated.updated_at.isoformat(),
            workflow_id,
        )
        return updated

    async def delete_workflow(self, workflow_id: str) -> None:
        await asyncio.to_thread(
            self._execute, "DELETE FROM workflows WHERE id = ?", workflow_id
        )

    async def list_workflows(self) -> list[WorkflowDocument]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT document FROM workflows ORDER BY created_at",
        )
        return [WorkflowDocument.model_validate_json(row["document"]) for row in rows]
