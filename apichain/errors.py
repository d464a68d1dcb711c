"""Exception types raised by apichain."""

from __future__ import annotations


class ApichainError(Exception):
    """Base class for all apichain errors."""


class WorkflowImportError(ApichainError, ValueError):
    """Raised when imported workflow JSON is malformed or incomplete."""


class WorkflowNotFoundError(ApichainError, KeyError):
    """Raised when a workflow id is unknown to the repository."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(workflow_id)
        self.workflow_id = workflow_id

    def __str__(self) -> str:
        return f"Workflow with id {self.workflow_id} not found"


class WorkflowNotLoadedError(ApichainError):
    """Raised when a run is requested while the store holds no workflow."""


class JsonPathError(ApichainError, ValueError):
    """Raised for syntactically invalid JSONPath expressions."""


class TransportError(ApichainError):
    """Transport-level failure: the request never produced an HTTP response."""


class RequestAborted(TransportError):
    """The in-flight request was cancelled by an abort."""

    def __init__(self, message: str = "Request aborted") -> None:
        super().__init__(message)


class RequestTimeout(TransportError):
    """The request exceeded the transport timeout."""


class InvalidRequestURL(TransportError):
    """The target URL was rejected before sending."""
