"""Job level commands."""

import json as json_lib
from pathlib import Path

import typer

from queue_explorer.cli.common import console, read_document, report, run_in_explorer
from queue_explorer.cli.render import render_job
from queue_explorer.explorer import Explorer


def show_job(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    job_id: str = typer.Argument(..., help="Job id"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the full data of a job."""

    async def _show(explorer: Explorer):
        node = await explorer.tree.find_job_node(connection, queue, job_id)
        return node, await explorer.actions.show_job(node)

    node, result = run_in_explorer(_show)
    if result.job is None:
        report(result)
        return

    if json_output:
        payload = result.job.model_dump(mode="json", by_alias=True)
        payload["state"] = node.status.value if node.status else None
        typer.echo(json_lib.dumps(payload, indent=2))
        return

    console.print(render_job(result.job, node.status))


def edit_job(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    job_id: str = typer.Argument(..., help="Job id"),
    file: Path = typer.Option(
        ...,
        "--file",
        "-f",
        help="YAML/JSON file with any of data, progress, delay, priority ('-' for stdin)",
    ),
):
    """Change the data, progress, delay or priority of a job."""
    text = read_document(file)

    async def _edit(explorer: Explorer):
        node = await explorer.tree.find_job_node(connection, queue, job_id)
        return await explorer.actions.edit_job_from_text(node, text)

    report(run_in_explorer(_edit))


def remove_job(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    job_id: str = typer.Argument(..., help="Job id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Remove a job from its queue."""
    if not yes and not typer.confirm(f"Remove job {job_id} from queue {queue}?", default=False):
        console.print("[yellow]Cancelled[/yellow]")
        return

    async def _remove(explorer: Explorer):
        node = await explorer.tree.find_job_node(connection, queue, job_id)
        return await explorer.actions.remove_job(node)

    report(run_in_explorer(_remove))


def promote_job(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    job_id: str = typer.Argument(..., help="Job id"),
):
    """Move a delayed job to the waiting state."""

    async def _promote(explorer: Explorer):
        node = await explorer.tree.find_job_node(connection, queue, job_id)
        return await explorer.actions.promote_job(node)

    report(run_in_explorer(_promote))
