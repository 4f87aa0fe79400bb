"""Read-only commands: render the tree and rediscover queues."""

from rich.markup import escape
import typer

from queue_explorer.actions import ActionResult
from queue_explorer.cli.common import console, print_result, run_in_explorer
from queue_explorer.cli.render import MAX_DEPTH, build_tree
from queue_explorer.explorer import Explorer
from queue_explorer.models import ConnectionStatus, JobSortOrder, QueueSortOrder
from queue_explorer.view_state import ViewState


def tree(
    connection: str | None = typer.Option(None, "--connection", "-c", help="Only this connection"),
    queue: str | None = typer.Option(None, "--queue", "-q", help="Only the queue with this exact name"),
    queue_pattern: str | None = typer.Option(
        None, "--queue-pattern", help="Only queues whose name contains this text"
    ),
    job_id: str | None = typer.Option(
        None, "--job-id", "-j", help="Only jobs whose id contains this text"
    ),
    queue_sort: QueueSortOrder = typer.Option(
        QueueSortOrder.NONE, "--queue-sort", help="Order of queues inside a connection"
    ),
    job_sort: JobSortOrder = typer.Option(
        JobSortOrder.NONE, "--job-sort", help="Order of jobs inside a status"
    ),
    depth: int = typer.Option(
        2,
        "--depth",
        "-d",
        min=1,
        max=MAX_DEPTH,
        help="1 = connections, 2 = queues, 3 = statuses, 4 = jobs",
    ),
):
    """Show connections, queues, statuses and jobs as a tree."""
    view_state = ViewState()
    view_state.set_filter(
        connection_name=connection,
        queue_name=queue,
        queue_name_pattern=queue_pattern,
        job_id_pattern=job_id,
    )
    view_state.set_sort(queue_sort=queue_sort, job_sort=job_sort)

    async def _render(explorer: Explorer):
        if not explorer.registry.connections:
            return None
        return await build_tree(explorer.tree, depth=depth)

    rendered = run_in_explorer(_render, view_state=view_state)
    if rendered is None:
        console.print("[yellow]No connections configured[/yellow]")
        return

    for line in view_state.describe_filter():
        console.print(f"[dim]Filter[/dim] {escape(line)}", highlight=False)
    for line in view_state.describe_sort():
        console.print(f"[dim]Sort[/dim] {escape(line)}", highlight=False)
    console.print(rendered)


def refresh(
    connection: str | None = typer.Argument(None, help="Connection to refresh (default: all)"),
):
    """Rescan the backend for queue names and rewrite the cache."""

    async def _refresh(explorer: Explorer) -> list[ActionResult]:
        if connection is not None:
            targets = [explorer.registry.get_connection(connection)]
        else:
            targets = list(explorer.registry.connections)

        results = []
        for target in targets:
            if target.status == ConnectionStatus.FAILED:
                results.append(ActionResult.warning(f"Connection {target.name} is not connected"))
                continue
            results.append(await explorer.actions.refresh_connection(target))
        return results

    results = run_in_explorer(_refresh)
    if not results:
        console.print("[yellow]No connections configured[/yellow]")
        return

    for result in results:
        print_result(result)
    if any(result.level == "error" for result in results):
        raise typer.Exit(code=1)
