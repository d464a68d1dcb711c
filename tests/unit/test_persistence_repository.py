import pytest

import apichain.persistence as persistence
from apichain.contracts import VariableExtraction, WorkflowDraft, WorkflowStep
from apichain.errors import WorkflowNotFoundError
from apichain.persistence import (
    InMemoryWorkflowRepository,
    SQLiteWorkflowRepository,
    get_repository,
)


def _draft(name="Login flow") -> WorkflowDraft:
    return WorkflowDraft(
        name=name,
        server_url="https://api.example.com",
        steps=[
            WorkflowStep(
                name="Login",
                extractions=[VariableExtraction(name="token", json_path="$.token")],
            )
        ],
    )


async def _exercise_crud(repo):
    wf = await repo.create_workflow(_draft())
    assert wf.id
    assert wf.created_at == wf.updated_at

    fetched = await repo.get_workflow(wf.id)
    assert fetched is not None
    assert fetched.id == wf.id
    assert fetched.name == "Login flow"
    assert fetched.steps[0].extractions[0].json_path == "$.token"

    updated = await repo.update_workflow(wf.id, name="Renamed", description="d")
    assert updated.name == "Renamed"
    assert updated.description == "d"
    assert updated.created_at == wf.created_at
    assert updated.updated_at >= wf.updated_at
    assert (await repo.get_workflow(wf.id)).name == "Renamed"

    second = await repo.create_workflow(_draft("Second"))
    all_wfs = await repo.list_workflows()
    assert {w.id for w in all_wfs} == {wf.id, second.id}

    await repo.delete_workflow(wf.id)
    assert await repo.get_workflow(wf.id) is None
    await repo.delete_workflow(wf.id)

    with pytest.raises(WorkflowNotFoundError):
        await repo.update_workflow(wf.id, name="gone")
    with pytest.raises(ValueError):
        await repo.update_workflow(second.id, id="other")


@pytest.mark.asyncio
async def test_inmemory_repository_crud():
    await _exercise_crud(InMemoryWorkflowRepository())


@pytest.mark.asyncio
async def test_sqlite_repository_crud(tmp_path):
    repo = SQLiteWorkflowRepository(tmp_path / "wf.db")
    try:
        await _exercise_crud(repo)
    finally:
        repo.close()


@pytest.mark.asyncio
async def test_sqlite_repository_persists_across_instances(tmp_path):
    db_path = tmp_path / "wf.db"
    first = SQLiteWorkflowRepository(db_path)
    wf = await first.create_workflow(_draft())
    first.close()

    second = SQLiteWorkflowRepository(db_path)
    fetched = await second.get_workflow(wf.id)
    second.close()
    assert fetched == wf


@pytest.mark.asyncio
async def test_create_requires_server_url():
    repo = InMemoryWorkflowRepository()
    with pytest.raises(ValueError):
        await repo.create_workflow(WorkflowDraft(name="x", server_url="  "))


def test_get_repository_selects_backend(tmp_path, monkeypatch):
    monkeypatch.setenv("APICHAIN_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("APICHAIN_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(persistence, "_repository_instance", None)

    repo = get_repository()
    assert isinstance(repo, InMemoryWorkflowRepository)
    assert get_repository() is repo

    sqlite_repo = get_repository(f"sqlite://{tmp_path / 'wf.db'}")
    assert isinstance(sqlite_repo, SQLiteWorkflowRepository)
    sqlite_repo.close()

    with pytest.raises(ValueError):
        get_repository("mysql://localhost/db")


def test_get_repository_postgres_requires_asyncpg(monkeypatch):
    monkeypatch.setattr(persistence, "PostgresWorkflowRepository", None)
    monkeypatch.setattr(persistence, "_repository_instance", None)

    with pytest.raises(RuntimeError, match="asyncpg"):
        get_repository("postgresql://localhost/db")
