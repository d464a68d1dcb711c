"""Core data contracts for apichain workflows."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
AuthType = Literal["none", "api-key", "bearer", "basic"]
StepStatus = Literal["pending", "running", "success", "failure", "skipped"]
RunStatus = Literal["idle", "running", "completed", "failed", "aborted"]

TERMINAL_RUN_STATUSES = frozenset({"completed", "failed", "aborted"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class _Model(BaseModel):
    """Accepts both the snake_case attribute names and the camelCase JSON keys."""

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Dump to the JSON-compatible camelCase form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WorkflowAuth(_Model):
    """Authentication applied to a request."""

    type: AuthType = "none"
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class WorkflowRequest(_Model):
    """HTTP request template for a workflow step."""

    method: HttpMethod = "GET"
    path: str = "/"
    headers: Dict[str, str] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict, alias="queryParams")
    body: Optional[str] = None
    auth: Optional[WorkflowAuth] = None
    server_url: Optional[str] = Field(default=None, alias="serverUrl")


class SpecEndpoint(_Model):
    """Link from a step back to the API description it was created from."""

    spec_id: str = Field(alias="specId")
    path: str
    method: str
    operation_id: Optional[str] = Field(default=None, alias="operationId")


class VariableExtraction(_Model):
    """Named rule pulling a value out of a step's response body."""

    id: str = Field(default_factory=new_id)
    name: str
    json_path: str = Field(alias="jsonPath")
    description: Optional[str] = None


class WorkflowStep(_Model):
    """One request definition plus its variable extractions."""

    id: str = Field(default_factory=new_id)
    order: int = 0
    name: str
    request: WorkflowRequest = Field(default_factory=WorkflowRequest)
    extractions: List[VariableExtraction] = Field(default_factory=list)
    spec_endpoint: Optional[SpecEndpoint] = Field(default=None, alias="specEndpoint")


class WorkflowDraft(_Model):
    """The portable part of a workflow, without storage-only fields."""

    name: str
    description: Optional[str] = None
    steps: List[WorkflowStep] = Field(default_factory=list)
    server_url: str = Field(alias="serverUrl")
    shared_auth: Optional[WorkflowAuth] = Field(default=None, alias="sharedAuth")


class WorkflowDocument(WorkflowDraft):
    """A stored workflow."""

    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_draft(self) -> WorkflowDraft:
        """Return the document without ``id`` and timestamps."""
        return WorkflowDraft.model_validate(
            self.model_dump(exclude={"id", "created_at", "updated_at"})
        )


class AvailableVariable(_Model):
    """A variable name visible to a step, and the step that produces it."""

    name: str
    step_name: str = Field(alias="stepName")
    step_id: str = Field(alias="stepId")


class StepResponse(_Model):
    """Completed HTTP response as recorded for a step."""

    status: int
    status_text: str = Field(default="", alias="statusText")
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    time: float = 0.0
    size: int = 0

    @property
    def ok(self) -> bool:
        """``True`` for 2xx responses; 4xx/5xx still count as successful steps."""
        return 200 <= self.status < 300


class StepExecutionResult(_Model):
    """Outcome of a single step within a run."""

    step_id: str = Field(alias="stepId")
    status: StepStatus = "pending"
    response: Optional[StepResponse] = None
    extracted_variables: Dict[str, Any] = Field(
        default_factory=dict, alias="extractedVariables"
    )
    error: Optional[str] = None
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")


class WorkflowExecution(_Model):
    """Aggregate state of one run."""

    workflow_id: str = Field(default="", alias="workflowId")
    status: RunStatus = "idle"
    current_step_index: int = Field(default=-1, alias="currentStepIndex")
    results: List[StepExecutionResult] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES


class HttpRequest(_Model):
    """Fully resolved request handed to a transport."""

    method: HttpMethod = "GET"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict, alias="queryParams")
    body: Optional[str] = None
    auth: Optional[WorkflowAuth] = None


@dataclass
class ExecutionCallbacks:
    """Progress hooks invoked synchronously by the engine between steps."""

    on_step_start: Optional[Callable[[int], None]] = None
    on_step_complete: Optional[Callable[[int, StepExecutionResult], None]] = None
    on_error: Optional[Callable[[int, str], None]] = None
    on_complete: Optional[Callable[[WorkflowExecution], None]] = None
