"""Workflow export/import: JSON serialization with validation on the way in.

Export drops storage-only fields (``id``, ``created_at``, ``updated_at``).
Import accepts only known fields, fills in what a hand-edited file may lack
and rejects anything that cannot form a runnable workflow.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from .contracts import WorkflowDocument, WorkflowDraft, new_id
from .errors import WorkflowImportError

VALID_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
VALID_AUTH_TYPES = frozenset({"none", "api-key", "bearer", "basic"})
AUTH_FIELDS = ("token", "apiKey", "username", "password")


def export_workflow(workflow: WorkflowDocument | WorkflowDraft) -> str:
    """Serialize ``workflow`` to indented JSON without storage-only fields."""
    data = workflow.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        exclude={"id", "created_at", "updated_at"},
    )
    return json.dumps(data, indent=2)


def import_workflow(text: str) -> WorkflowDraft:
    """Parse and sanitize exported workflow JSON.

    Raises:
        WorkflowImportError: If the text is not JSON or lacks a ``name``,
            a ``steps`` array or a ``serverUrl``, if a step is malformed or
            if two steps share an id.
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError):
        raise WorkflowImportError("Invalid JSON: could not parse workflow data") from None

    if not isinstance(raw, dict):
        raise WorkflowImportError("Invalid workflow: expected an object")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise WorkflowImportError('Invalid workflow: missing or empty "name"')
    steps = raw.get("steps")
    if not isinstance(steps, list):
        raise WorkflowImportError('Invalid workflow: "steps" must be an array')
    server_url = raw.get("serverUrl")
    if not isinstance(server_url, str) or not server_url.strip():
        raise WorkflowImportError('Invalid workflow: missing or empty "serverUrl"')

    cleaned_steps = [_clean_step(step, index) for index, step in enumerate(steps)]
    seen_ids = set()
    for step in cleaned_steps:
        if step["id"] in seen_ids:
            raise WorkflowImportError(f'Invalid workflow: duplicate step id "{step["id"]}"')
        seen_ids.add(step["id"])

    cleaned: Dict[str, Any] = {
        "name": name.strip(),
        "serverUrl": server_url.strip(),
        "steps": cleaned_steps,
    }
    if isinstance(raw.get("description"), str):
        cleaned["description"] = raw["description"]
    if isinstance(raw.get("sharedAuth"), dict):
        cleaned["sharedAuth"] = _clean_auth(raw["sharedAuth"])

    return WorkflowDraft.model_validate(cleaned)


def _clean_step(raw: Any, index: int) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise WorkflowImportError(f"Invalid step at index {index}: expected an object")

    step: Dict[str, Any] = {
        "id": raw["id"] if isinstance(raw.get("id"), str) else new_id(),
        "order": raw["order"] if _is_int(raw.get("order")) else index,
        "name": raw["name"] if isinstance(raw.get("name"), str) else f"Step {index + 1}",
        "request": _clean_request(raw.get("request"), index),
        "extractions": _clean_extractions(raw.get("extractions")),
    }

    endpoint = raw.get("specEndpoint")
    if isinstance(endpoint, dict):
        step["specEndpoint"] = {
            "specId": str(endpoint.get("specId") or ""),
            "path": str(endpoint.get("path") or ""),
            "method": str(endpoint.get("method") or ""),
        }
        if endpoint.get("operationId"):
            step["specEndpoint"]["operationId"] = str(endpoint["operationId"])
    return step


def _clean_request(raw: Any, step_index: int) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise WorkflowImportError(f"Invalid request at step {step_index}: expected an object")

    method = str(raw.get("method") or "GET").upper()
    if method not in VALID_METHODS:
        raise WorkflowImportError(f'Invalid method "{method}" at step {step_index}')

    request: Dict[str, Any] = {
        "method": method,
        "path": raw["path"] if isinstance(raw.get("path"), str) else "/",
        "headers": raw["headers"] if _is_string_map(raw.get("headers")) else {},
        "queryParams": raw["queryParams"] if _is_string_map(raw.get("queryParams")) else {},
    }
    if isinstance(raw.get("body"), str):
        request["body"] = raw["body"]
    if isinstance(raw.get("serverUrl"), str):
        request["serverUrl"] = raw["serverUrl"]
    if isinstance(raw.get("auth"), dict):
        request["auth"] = _clean_auth(raw["auth"])
    return request


def _clean_auth(raw: Dict[str, Any]) -> Dict[str, Any]:
    auth_type = raw.get("type")
    auth: Dict[str, Any] = {"type": auth_type if auth_type in VALID_AUTH_TYPES else "none"}
    for field in AUTH_FIELDS:
        if isinstance(raw.get(field), str):
            auth[field] = raw[field]
    return auth


def _clean_extractions(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    cleaned = []
    for item in raw:
        if not (
            isinstance(item, dict)
            and isinstance(item.get("id"), str)
            and isinstance(item.get("name"), str)
            and isinstance(item.get("jsonPath"), str)
        ):
            continue
        extraction = {"id": item["id"], "name": item["name"], "jsonPath": item["jsonPath"]}
        if isinstance(item.get("description"), str):
            extraction["description"] = item["description"]
        cleaned.append(extraction)
    return cleaned


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_string_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )
