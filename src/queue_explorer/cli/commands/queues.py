"""Queue level commands."""

from pathlib import Path

import typer

from queue_explorer.actions import job_template_text
from queue_explorer.cli.common import read_document, report, run_in_explorer
from queue_explorer.explorer import Explorer


def _confirmer(yes: bool):
    def confirm(message: str) -> bool:
        return yes or typer.confirm(message, default=False)

    return confirm


def drain(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    delayed: bool = typer.Option(False, "--delayed", help="Also remove delayed jobs"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Remove all waiting, prioritized and paused jobs from a queue."""

    async def _drain(explorer: Explorer):
        node = await explorer.tree.find_queue_node(connection, queue, with_count=False)
        return await explorer.actions.drain_queue(node, _confirmer(yes), delayed=delayed)

    report(run_in_explorer(_drain))


def obliterate(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    force: bool = typer.Option(False, "--force", help="Obliterate even with active jobs"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Completely remove a queue and all of its jobs. Cannot be undone."""

    async def _obliterate(explorer: Explorer):
        node = await explorer.tree.find_queue_node(connection, queue, with_count=False)
        return await explorer.actions.obliterate_queue(node, _confirmer(yes), force=force)

    report(run_in_explorer(_obliterate))


def create_job(
    connection: str = typer.Argument(..., help="Connection name"),
    queue: str = typer.Argument(..., help="Queue name"),
    file: Path | None = typer.Option(
        None, "--file", "-f", help="YAML/JSON file with name, data and opts ('-' for stdin)"
    ),
    template: bool = typer.Option(False, "--template", help="Print a job template and exit"),
):
    """Add a job to a queue."""
    if template:
        typer.echo(job_template_text(queue), nl=False)
        return
    if file is None:
        raise typer.BadParameter("either --file or --template is required", param_hint="--file")

    text = read_document(file)

    async def _create(explorer: Explorer):
        node = await explorer.tree.find_queue_node(connection, queue, with_count=False)
        return await explorer.actions.create_job_from_text(node, text)

    report(run_in_explorer(_create))
