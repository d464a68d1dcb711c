"""Workflow export/import tests."""

import json

import pytest

from apichain import WorkflowStore, export_workflow, import_workflow
from apichain.contracts import (
    VariableExtraction,
    WorkflowAuth,
    WorkflowDocument,
    WorkflowRequest,
    WorkflowStep,
)
from apichain.errors import WorkflowImportError


def _document():
    return WorkflowDocument(
        name="Login flow",
        description="Fetch a token then the profile",
        server_url="https://api.example.com",
        shared_auth=WorkflowAuth(type="api-key", api_key="k"),
        steps=[
            WorkflowStep(
                name="Login",
                order=0,
                request=WorkflowRequest(method="POST", path="/login", body='{"u": "a"}'),
                extractions=[VariableExtraction(name="token", json_path="$.token")],
            ),
            WorkflowStep(
                name="Profile",
                order=1,
                request=WorkflowRequest(
                    path="/me", headers={"Authorization": "Bearer {{token}}"}
                ),
            ),
        ],
    )


def test_export_strips_storage_fields_and_uses_camel_case():
    data = json.loads(export_workflow(_document()))

    assert "id" not in data
    assert "created_at" not in data
    assert "updated_at" not in data
    assert data["serverUrl"] == "https://api.example.com"
    assert data["sharedAuth"] == {"type": "api-key", "apiKey": "k"}
    assert data["steps"][0]["extractions"][0]["jsonPath"] == "$.token"
    assert data["steps"][1]["request"]["queryParams"] == {}


def test_export_then_import_preserves_workflow():
    document = _document()
    draft = import_workflow(export_workflow(document))

    assert draft == document.to_draft()


def test_import_rejects_non_array_steps_and_leaves_store_untouched():
    store = WorkflowStore(_document())
    before = store.current_workflow

    with pytest.raises(WorkflowImportError, match="steps"):
        draft = import_workflow(
            json.dumps({"name": "x", "steps": "not-array", "serverUrl": "http://x"})
        )
        store.set_current_workflow(WorkflowDocument.model_validate(draft.model_dump()))

    assert store.current_workflow is before


@pytest.mark.parametrize(
    "payload, message",
    [
        ("{not json", "Invalid JSON: could not parse workflow data"),
        ("[]", "expected an object"),
        ('{"steps": [], "serverUrl": "http://x"}', '"name"'),
        ('{"name": "  ", "steps": [], "serverUrl": "http://x"}', '"name"'),
        ('{"name": "x", "steps": []}', '"serverUrl"'),
        ('{"name": "x", "steps": [1], "serverUrl": "http://x"}', "step at index 0"),
        ('{"name": "x", "steps": [{"name": "a"}], "serverUrl": "http://x"}', "request"),
        (
            '{"name": "x", "steps": [{"request": {"method": "TRACE"}}], "serverUrl": "http://x"}',
            "TRACE",
        ),
    ],
)
def test_import_rejects_invalid_documents(payload, message):
    with pytest.raises(WorkflowImportError) as excinfo:
        import_workflow(payload)
    assert message in str(excinfo.value)


def test_import_fills_defaults_and_drops_unknown_fields():
    payload = {
        "id": "stored-id",
        "name": "  Imported  ",
        "serverUrl": " https://api.example.com ",
        "createdAt": "2024-01-01",
        "steps": [
            {
                "request": {"method": "post", "path": "/items", "headers": {"X": 1}},
                "extractions": [
                    {"id": "e1", "name": "item_id", "jsonPath": "$.id"},
                    {"name": "incomplete"},
                ],
                "extra": "ignored",
            }
        ],
    }

    draft = import_workflow(json.dumps(payload))

    assert draft.name == "Imported"
    assert draft.server_url == "https://api.example.com"
    step = draft.steps[0]
    assert step.name == "Step 1"
    assert step.order == 0
    assert step.id
    assert step.request.method == "POST"
    assert step.request.headers == {}
    assert [e.name for e in step.extractions] == ["item_id"]


def test_import_normalizes_unknown_auth_type():
    payload = {
        "name": "x",
        "serverUrl": "http://x",
        "steps": [],
        "sharedAuth": {"type": "oauth", "token": "t"},
    }
    draft = import_workflow(json.dumps(payload))
    assert draft.shared_auth.type == "none"
    assert draft.shared_auth.token == "t"


def test_import_rejects_duplicate_step_ids():
    payload = {
        "name": "x",
        "serverUrl": "http://x",
        "steps": [
            {"id": "s1", "name": "a", "request": {"path": "/a"}},
            {"id": "s1", "name": "b", "request": {"path": "/b"}},
        ],
    }
    with pytest.raises(WorkflowImportError, match='duplicate step id "s1"'):
        import_workflow(json.dumps(payload))
