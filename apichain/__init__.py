"""apichain: Sequential HTTP request chains with variable passing."""

from .contracts import (
    AvailableVariable,
    ExecutionCallbacks,
    HttpRequest,
    StepExecutionResult,
    StepResponse,
    VariableExtraction,
    WorkflowAuth,
    WorkflowDocument,
    WorkflowDraft,
    WorkflowExecution,
    WorkflowRequest,
    WorkflowStep,
)
from .engine import CancellationToken, WorkflowEngine
from .persistence import get_repository
from .store import WorkflowStore
from .transports import get_transport
from .workflow_io import export_workflow, import_workflow

__version__ = "0.1.0"
__all__ = [
    "AvailableVariable",
    "CancellationToken",
    "ExecutionCallbacks",
    "HttpRequest",
    "StepExecutionResult",
    "StepResponse",
    "VariableExtraction",
    "WorkflowAuth",
    "WorkflowDocument",
    "WorkflowDraft",
    "WorkflowEngine",
    "WorkflowExecution",
    "WorkflowRequest",
    "WorkflowStep",
    "WorkflowStore",
    "export_workflow",
    "get_repository",
    "get_transport",
    "import_workflow",
]
