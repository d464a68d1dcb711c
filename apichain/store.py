"""Live workflow state: the document being edited and its latest run.

The store is the single writer of the current ``WorkflowDocument``. Every
mutator replaces the document with a new snapshot, keeps ``steps[i].order``
equal to ``i`` and returns the new document. Mutators called while no
workflow is loaded do nothing and return ``None``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, List, Literal, Optional

from .contracts import (
    AvailableVariable,
    ExecutionCallbacks,
    StepExecutionResult,
    VariableExtraction,
    WorkflowDocument,
    WorkflowExecution,
    WorkflowStep,
    utcnow,
)
from .errors import WorkflowNotLoadedError
from .variables import get_available_variables

if TYPE_CHECKING:
    from .engine import WorkflowEngine

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


def _reindex(steps: List[WorkflowStep]) -> List[WorkflowStep]:
    return [
        step if step.order == index else step.model_copy(update={"order": index})
        for index, step in enumerate(steps)
    ]


class WorkflowStore:
    """Single-writer state container for the current workflow."""

    def __init__(self, workflow: Optional[WorkflowDocument] = None) -> None:
        self._lock = threading.RLock()
        self.current_workflow: Optional[WorkflowDocument] = workflow
        self.workflows: List[WorkflowDocument] = []
        self.execution = WorkflowExecution()

    # ------------------------------------------------------------------
    # Workflow selection
    def set_current_workflow(self, workflow: Optional[WorkflowDocument]) -> None:
        with self._lock:
            self.current_workflow = workflow

    def set_workflows(self, workflows: List[WorkflowDocument]) -> None:
        with self._lock:
            self.workflows = list(workflows)

    def _replace_steps(
        self, transform: Callable[[List[WorkflowStep]], Optional[List[WorkflowStep]]]
    ) -> Optional[WorkflowDocument]:
        with self._lock:
            workflow = self.current_workflow
            if workflow is None:
                logger.debug("No workflow loaded; ignoring step mutation")
                return None
            steps = transform(list(workflow.steps))
            if steps is None:
                return workflow
            self.current_workflow = workflow.model_copy(update={"steps": _reindex(steps)})
            return self.current_workflow

    # ------------------------------------------------------------------
    # Step CRUD
    def add_step(self, step: WorkflowStep) -> Optional[WorkflowDocument]:
        """Append ``step`` at the end of the chain."""

        def _add(steps: List[WorkflowStep]) -> List[WorkflowStep]:
            return steps + [step.model_copy(update={"order": len(steps)})]

        return self._replace_steps(_add)

    def update_step(self, step_id: str, **updates: Any) -> Optional[WorkflowDocument]:
        """Shallow-update one step. Its position is not changed."""
        updates.pop("order", None)

        def _update(steps: List[WorkflowStep]) -> List[WorkflowStep]:
            return [
                s.model_copy(update=updates) if s.id == step_id else s for s in steps
            ]

        return self._replace_steps(_update)

    def remove_step(self, step_id: str) -> Optional[WorkflowDocument]:
        return self._replace_steps(lambda steps: [s for s in steps if s.id != step_id])

    def reorder_step(self, step_id: str, direction: Direction) -> Optional[WorkflowDocument]:
        """Swap a step with its neighbour; no-op at either end."""

        def _swap(steps: List[WorkflowStep]) -> Optional[List[WorkflowStep]]:
            index = next((i for i, s in enumerate(steps) if s.id == step_id), -1)
            if index == -1:
                return None
            target = index - 1 if direction == "up" else index + 1
            if target < 0 or target >= len(steps):
                return None
            steps[index], steps[target] = steps[target], steps[index]
            return steps

        return self._replace_steps(_swap)

    def reorder_steps(self, from_index: int, to_index: int) -> Optional[WorkflowDocument]:
        """Move the step at ``from_index`` so it ends up at ``to_index``."""

        def _move(steps: List[WorkflowStep]) -> Optional[List[WorkflowStep]]:
            if not (0 <= from_index < len(steps) and 0 <= to_index < len(steps)):
                return None
            moved = steps.pop(from_index)
            steps.insert(to_index, moved)
            return steps

        return self._replace_steps(_move)

    # ------------------------------------------------------------------
    # Extraction CRUD
    def _replace_extractions(
        self,
        step_id: str,
        transform: Callable[[List[VariableExtraction]], List[VariableExtraction]],
    ) -> Optional[WorkflowDocument]:
        def _update(steps: List[WorkflowStep]) -> List[WorkflowStep]:
            return [
                s.model_copy(update={"extractions": transform(list(s.extractions))})
                if s.id == step_id
                else s
                for s in steps
            ]

        return self._replace_steps(_update)

    def add_extraction(
        self, step_id: str, extraction: VariableExtraction
    ) -> Optional[WorkflowDocument]:
        return self._replace_extractions(step_id, lambda items: items + [extraction])

    def remove_extraction(self, step_id: str, extraction_id: str) -> Optional[WorkflowDocument]:
        return self._replace_extractions(
            step_id, lambda items: [e for e in items if e.id != extraction_id]
        )

    def update_extraction(
        self, step_id: str, extraction_id: str, **updates: Any
    ) -> Optional[WorkflowDocument]:
        return self._replace_extractions(
            step_id,
            lambda items: [
                e.model_copy(update=updates) if e.id == extraction_id else e
                for e in items
            ],
        )

    # ------------------------------------------------------------------
    # Computed
    def get_available_variables(self, before_step_index: int) -> List[AvailableVariable]:
        workflow = self.current_workflow
        if workflow is None:
            return []
        return get_available_variables(workflow.steps, before_step_index)

    # ------------------------------------------------------------------
    # Execution state
    def set_execution(self, **updates: Any) -> WorkflowExecution:
        """Shallow-merge ``updates`` into the execution unless it has finished."""
        with self._lock:
            if self.execution.is_terminal:
                logger.debug(
                    f"Execution already {self.execution.status}; ignoring update"
                )
                return self.execution
            self.execution = self.execution.model_copy(update=updates)
            return self.execution

    def reset_execution(self) -> WorkflowExecution:
        with self._lock:
            self.execution = WorkflowExecution()
            return self.execution

    def execution_callbacks(self) -> ExecutionCallbacks:
        """Callbacks that mirror engine progress into :attr:`execution`."""

        def on_step_start(index: int) -> None:
            self.set_execution(current_step_index=index)

        def on_step_complete(index: int, result: StepExecutionResult) -> None:
            with self._lock:
                self.set_execution(
                    results=self.execution.results + [result],
                    variables={**self.execution.variables, **result.extracted_variables},
                )

        return ExecutionCallbacks(
            on_step_start=on_step_start, on_step_complete=on_step_complete
        )

    async def run_workflow(self, engine: "WorkflowEngine") -> WorkflowExecution:
        """Execute the current workflow with ``engine`` and record the outcome.

        If the engine raises, the execution is closed as ``failed`` (or
        ``aborted`` when the task is cancelled) before the error propagates.

        Raises:
            WorkflowNotLoadedError: If no workflow is loaded.
        """
        workflow = self.current_workflow
        if workflow is None:
            raise WorkflowNotLoadedError("No workflow loaded")

        self.reset_execution()
        self.set_execution(workflow_id=workflow.id, status="running", started_at=utcnow())
        try:
            final = await engine.execute(workflow, self.execution_callbacks())
        except asyncio.CancelledError:
            self.set_execution(status="aborted", completed_at=utcnow())
            raise
        except Exception:
            logger.exception(f"Workflow {workflow.id} run raised; marking it failed")
            self.set_execution(status="failed", completed_at=utcnow())
            raise
        return self.set_execution(
            status=final.status,
            current_step_index=final.current_step_index,
            results=final.results,
            variables=final.variables,
            completed_at=final.completed_at,
        )
