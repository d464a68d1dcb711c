"""In-memory implementation of the workflow repository."""

from __future__ import annotations

from typing import Any, Dict

from ..contracts import WorkflowDocument, WorkflowDraft
from ..errors import WorkflowNotFoundError
from .repository import WorkflowRepository, apply_updates, new_document


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow documents in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowDocument] = {}

    # ------------------------------------------------------------------
    async def create_workflow(self, draft: WorkflowDraft) -> WorkflowDocument:
        document = new_document(draft)
        self._workflows[document.id] = document
        return document

    async def get_workflow(self, workflow_id: str) -> WorkflowDocument | None:
        return self._workflows.get(workflow_id)

    async def update_workflow(self, workflow_id: str, **updates: Any) -> WorkflowDocument:
        existing = self._workflows.get(workflow_id)
        if existing is None:
            raise WorkflowNotFoundError(workflow_id)
        updated = apply_updates(existing, updates)
        self._workflows[workflow_id] = updated
        return updated

    async def delete_workflow(self, workflow_id: str) -> None:
        self._workflows.pop(workflow_id, None)

    async def list_workflows(self) -> list[WorkflowDocument]:
        return list(self._workflows.values())
