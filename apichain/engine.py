"""Workflow execution engine for apichain.

Runs a workflow's steps strictly in order. Each step's request is rendered
with the variables extracted so far, sent through a transport, and its
extractions are merged into scope for the steps that follow. A failed step
stops the run and the remaining steps are recorded as skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar

from .constants import BODY_METHODS
from .contracts import (
    ExecutionCallbacks,
    HttpRequest,
    StepExecutionResult,
    WorkflowDocument,
    WorkflowExecution,
    WorkflowStep,
    utcnow,
)
from .errors import RequestAborted, TransportError
from .transports import BaseTransport
from .variables import extract_variables, substitute

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag shared between a run and its caller."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Request cancellation. Returns ``False`` if already requested."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless cancellation is requested first.

        A result that is already available when cancellation arrives wins.

        Raises:
            RequestAborted: If cancellation interrupted the call.
        """
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task in done:
            return task.result()
        raise RequestAborted()


def build_request(
    workflow: WorkflowDocument, step: WorkflowStep, variables: Dict[str, Any]
) -> HttpRequest:
    """Render ``step``'s request template against ``variables``.

    Step-level ``server_url`` and ``auth`` take precedence over the
    workflow-level ``server_url`` and ``shared_auth``.
    """
    template = step.request
    server_url = (template.server_url or workflow.server_url).rstrip("/")
    path = substitute(template.path, variables, "url")
    if path and not path.startswith("/"):
        path = f"/{path}"

    headers = {
        name: substitute(value, variables, "header")
        for name, value in template.headers.items()
    }
    query_params = {
        name: rendered
        for name, value in template.query_params.items()
        if (rendered := substitute(value, variables, "query"))
    }
    body = None
    if template.body and template.method in BODY_METHODS:
        body = substitute(template.body, variables, "body")

    return HttpRequest(
        method=template.method,
        url=f"{server_url}{path}",
        headers=headers,
        query_params=query_params,
        body=body,
        auth=template.auth or workflow.shared_auth,
    )


def _skipped(step: WorkflowStep) -> StepExecutionResult:
    return StepExecutionResult(step_id=step.id, status="skipped")


class WorkflowEngine:
    """Executes one workflow run at a time over ``transport``."""

    def __init__(self, transport: BaseTransport) -> None:
        self._transport = transport
        self._token: Optional[CancellationToken] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def abort(self) -> None:
        """Cancel the active run.

        Steps not yet started are skipped and an in-flight request is
        interrupted. Without an active run, or on repeated calls, nothing
        happens.
        """
        if not self._running or self._token is None:
            logger.debug("Abort requested with no active run; ignoring")
            return
        if self._token.cancel():
            logger.warning("Abort requested for active workflow run")

    async def execute(
        self,
        workflow: WorkflowDocument,
        callbacks: Optional[ExecutionCallbacks] = None,
        token: Optional[CancellationToken] = None,
    ) -> WorkflowExecution:
        """Run ``workflow`` and return the final execution state.

        Transport failures are recorded on the failing step and never raised.

        Args:
            workflow: Document whose steps are executed in list order.
            callbacks: Optional progress hooks.
            token: Optional externally owned cancellation token.
        """
        if self._running:
            raise RuntimeError("A workflow run is already in progress")

        self._token = token or CancellationToken()
        self._running = True
        try:
            return await self._run(workflow, callbacks or ExecutionCallbacks(), self._token)
        finally:
            self._running = False

    async def _run(
        self,
        workflow: WorkflowDocument,
        callbacks: ExecutionCallbacks,
        token: CancellationToken,
    ) -> WorkflowExecution:
        started_at = utcnow()
        steps = list(workflow.steps)
        results: List[StepExecutionResult] = []
        variables: Dict[str, Any] = {}
        current_index = -1
        status = "completed"

        logger.info(f"Starting workflow {workflow.id} ({len(steps)} steps)")

        for index, step in enumerate(steps):
            if token.cancelled:
                results.extend(_skipped(s) for s in steps[index:])
                status = "aborted"
                logger.warning(
                    f"Workflow {workflow.id} aborted before step {index} ({step.name})"
                )
                break

            current_index = index
            if callbacks.on_step_start:
                callbacks.on_step_start(index)

            result, aborted = await self._run_step(workflow, step, variables, token)
            results.append(result)
            variables.update(result.extracted_variables)

            if result.status == "failure" and callbacks.on_error:
                callbacks.on_error(index, result.error or "Unknown error")
            if callbacks.on_step_complete:
                callbacks.on_step_complete(index, result)

            if result.status == "failure":
                results.extend(_skipped(s) for s in steps[index + 1 :])
                status = "aborted" if aborted else "failed"
                break

        execution = WorkflowExecution(
            workflow_id=workflow.id,
            status=status,
            current_step_index=current_index,
            results=results,
            variables=variables,
            started_at=started_at,
            completed_at=utcnow(),
        )
        logger.info(f"Workflow {workflow.id} finished with status {status}")
        if callbacks.on_complete:
            callbacks.on_complete(execution)
        return execution

    async def _run_step(
        self,
        workflow: WorkflowDocument,
        step: WorkflowStep,
        variables: Dict[str, Any],
        token: CancellationToken,
    ) -> Tuple[StepExecutionResult, bool]:
        """Execute one step; the flag reports whether cancellation caused a failure."""
        started_at = utcnow()
        request = build_request(workflow, step, variables)
        logger.info(f"Step {step.order} ({step.name}): {request.method} {request.url}")

        try:
            response = await token.race(self._transport.send(request))
        except TransportError as e:
            aborted = isinstance(e, RequestAborted) or token.cancelled
            logger.error(f"Step {step.name} failed: {e}")
            result = StepExecutionResult(
                step_id=step.id,
                status="failure",
                error=str(e) or type(e).__name__,
                started_at=started_at,
                completed_at=utcnow(),
            )
            return result, aborted

        extracted: Dict[str, Any] = {}
        if step.extractions:
            extracted, errors = extract_variables(response.body, step.extractions)
            if errors:
                logger.warning(f'Extraction warnings for step "{step.name}": {errors}')

        result = StepExecutionResult(
            step_id=step.id,
            status="success",
            response=response,
            extracted_variables=extracted,
            started_at=started_at,
            completed_at=utcnow(),
        )
        return result, False
