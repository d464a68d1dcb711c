"""Command line interface for managing and running apichain workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from apichain import WorkflowEngine, WorkflowStore, get_repository, get_transport
from apichain.contracts import WorkflowDocument, WorkflowExecution
from apichain.errors import WorkflowImportError
from apichain.variables import preview_extraction
from apichain.workflow_io import export_workflow, import_workflow

app = typer.Typer(help="CLI for apichain workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
extract_app = typer.Typer(help="Commands for testing variable extraction")

app.add_typer(workflow_app, name="workflow")
app.add_typer(extract_app, name="extract")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """apichain CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_workflow(workflow_id: str) -> WorkflowDocument:
    repo = get_repository()
    workflow = asyncio.run(repo.get_workflow(workflow_id))
    if workflow is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    return workflow


@workflow_app.command("list")
def workflow_list() -> None:
    """
    List stored workflows.

    Example:
        apichain workflow list
        # Output: 0b6f...    Login and fetch users    2 steps
    """
    repo = get_repository()
    workflows = asyncio.run(repo.list_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{len(wf.steps)} steps")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """
    Show a workflow's steps and the variables each one extracts.

    Example:
        apichain workflow show 0b6f...
        # Output: Workflow 0b6f...: Login and fetch users
        #         Server: https://api.example.com
        #         0. Login: POST /auth/token -> token
        #         1. Users: GET /users
    """
    wf = _load_workflow(workflow_id)
    typer.echo(f"Workflow {wf.id}: {wf.name}")
    if wf.description:
        typer.echo(wf.description)
    typer.echo(f"Server: {wf.server_url}")
    for step in wf.steps:
        line = f"{step.order}. {step.name}: {step.request.method} {step.request.path}"
        if step.extractions:
            line += " -> " + ", ".join(e.name for e in step.extractions)
        typer.echo(line)


@workflow_app.command("import")
def workflow_import(path: Path) -> None:
    """Import a workflow from an exported JSON file."""
    try:
        draft = import_workflow(path.read_text())
    except FileNotFoundError:
        typer.secho(f"File not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except WorkflowImportError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    repo = get_repository()
    workflow = asyncio.run(repo.create_workflow(draft))
    typer.echo(f"Imported workflow {workflow.id}: {workflow.name}")


@workflow_app.command("export")
def workflow_export(
    workflow_id: str,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file"),
) -> None:
    """Export a workflow as JSON, without its id and timestamps."""
    data = export_workflow(_load_workflow(workflow_id))
    if output is None:
        typer.echo(data)
        return
    output.write_text(data)
    typer.echo(f"Exported to {output}")


@workflow_app.command("delete")
def workflow_delete(workflow_id: str) -> None:
    """Delete a stored workflow."""
    _load_workflow(workflow_id)
    asyncio.run(get_repository().delete_workflow(workflow_id))
    typer.echo(f"Deleted workflow {workflow_id}")


@workflow_app.command("vars")
def workflow_vars(
    workflow_id: str,
    before: int = typer.Option(..., "--before", help="Step index to resolve scope for"),
) -> None:
    """List the variables available to the step at position BEFORE."""
    store = WorkflowStore(_load_workflow(workflow_id))
    variables = store.get_available_variables(before)
    if not variables:
        typer.echo("No variables in scope")
        return
    for var in variables:
        typer.echo(f"{{{{{var.name}}}}}\t(from {var.step_name})")


def _print_execution(workflow: WorkflowDocument, execution: WorkflowExecution) -> None:
    names = {step.id: step.name for step in workflow.steps}
    for result in execution.results:
        line = f"[{result.status}] {names.get(result.step_id, result.step_id)}"
        if result.response is not None:
            response = result.response
            line += f" - {response.status} {response.status_text} ({response.time:.0f}ms)"
        if result.error:
            line += f" - {result.error}"
        typer.echo(line)
    typer.echo(f"Workflow {execution.status}")
    if execution.variables:
        typer.echo(f"Variables: {json.dumps(execution.variables)}")


@workflow_app.command("run")
def workflow_run(workflow_id: str) -> None:
    """
    Execute a workflow's steps in order and report each outcome.

    Exits with code 1 unless every step succeeds.

    Example:
        apichain workflow run 0b6f...
        # Output: [success] Login - 200 OK (84ms)
        #         [success] Users - 200 OK (51ms)
        #         Workflow completed
        #         Variables: {"token": "abc"}
    """
    workflow = _load_workflow(workflow_id)
    store = WorkflowStore(workflow)
    transport = get_transport()

    async def _run() -> WorkflowExecution:
        async with transport:
            return await store.run_workflow(WorkflowEngine(transport))

    execution = asyncio.run(_run())
    _print_execution(workflow, execution)
    if execution.status != "completed":
        raise typer.Exit(code=1)


@extract_app.command("preview")
def extract_preview(path: Path, expression: str) -> None:
    """Evaluate a JSONPath EXPRESSION against the JSON document in PATH."""
    try:
        body = json.loads(path.read_text())
    except FileNotFoundError:
        typer.secho(f"File not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except ValueError:
        typer.secho(f"Invalid JSON in {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    value, error = preview_extraction(body, expression)
    if error:
        typer.secho(error, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(value, indent=2))
