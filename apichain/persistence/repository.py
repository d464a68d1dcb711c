"""Repository abstraction for workflow document persistence."""

from __future__ import annotations

from typing import Any, Protocol

from ..contracts import WorkflowDocument, WorkflowDraft, utcnow

UPDATABLE_FIELDS = frozenset({"name", "description", "steps", "server_url", "shared_auth"})


def new_document(draft: WorkflowDraft) -> WorkflowDocument:
    """Build a fresh document from ``draft`` with a new id and timestamps."""
    if not draft.server_url or not draft.server_url.strip():
        raise ValueError("A workflow requires a non-empty serverUrl")
    now = utcnow()
    return WorkflowDocument.model_validate(
        {**draft.model_dump(), "created_at": now, "updated_at": now}
    )


def apply_updates(existing: WorkflowDocument, updates: dict[str, Any]) -> WorkflowDocument:
    """Return ``existing`` with ``updates`` applied and ``updated_at`` bumped."""
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update workflow fields: {', '.join(sorted(unknown))}")
    data = {**existing.model_dump(), **updates, "updated_at": utcnow()}
    return WorkflowDocument.model_validate(data)


class WorkflowRepository(Protocol):
    """Protocol for workflow persistence backends."""

    async def create_workflow(self, draft: WorkflowDraft) -> WorkflowDocument:
        """Persist a new workflow and return the stored document."""

    async def get_workflow(self, workflow_id: str) -> WorkflowDocument | None:
        """Retrieve the workflow by id."""

    async def update_workflow(self, workflow_id: str, **updates: Any) -> WorkflowDocument:
        """Apply ``updates`` to an existing workflow.

        Raises:
            WorkflowNotFoundError: If ``workflow_id`` is unknown.
        """

    async def delete_workflow(self, workflow_id: str) -> None:
        """Remove the workflow if present."""

    async def list_workflows(self) -> list[WorkflowDocument]:
        """Return all persisted workflows."""
