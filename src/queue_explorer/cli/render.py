"""Rich renderables for tree nodes and job snapshots."""

from datetime import datetime

from rich.console import Group
from rich.markup import escape
from rich.pretty import Pretty
from rich.table import Table
from rich.tree import Tree

from queue_explorer.models import ConnectionStatus, JobSnapshot, JobState
from queue_explorer.tree import ConnectionNode, JobNode, Node, QueueNode, StatusNode, TreeProvider

STATUS_STYLES = {
    JobState.WAITING: "yellow",
    JobState.ACTIVE: "cyan",
    JobState.COMPLETED: "green",
    JobState.FAILED: "red",
    JobState.DELAYED: "magenta",
    JobState.PRIORITIZED: "blue",
    JobState.WAITING_CHILDREN: "bright_black",
}

CONNECTION_STATUS_STYLES = {
    ConnectionStatus.IDLE: "dim",
    ConnectionStatus.CONNECTED: "yellow",
    ConnectionStatus.FAILED: "bold red",
    ConnectionStatus.LOADING_QUEUES: "yellow",
    ConnectionStatus.READY: "green",
}

# Levels below the connection: queues, statuses, jobs
MAX_DEPTH = 4


def node_label(node: Node) -> str:
    match node:
        case ConnectionNode(connection=connection):
            style = CONNECTION_STATUS_STYLES[connection.status]
            return (
                f"[bold]{escape(node.label)}[/bold] "
                f"[{style}]{connection.status.value}[/{style}]"
            )
        case QueueNode():
            return f"[cyan]{escape(node.label)}[/cyan]"
        case StatusNode(status=status):
            style = STATUS_STYLES[status]
            return f"[{style}]{escape(node.label)}[/{style}]"
        case JobNode():
            return escape(node.label)
        case _:
            raise TypeError(f"Unknown tree node: {node!r}")


async def build_tree(provider: TreeProvider, depth: int = 2, title: str = "Connections") -> Tree:
    """Expand the hierarchy ``depth`` levels deep into a rich ``Tree``."""
    root = Tree(f"[bold]{escape(title)}[/bold]")
    await _add_children(provider, root, None, min(depth, MAX_DEPTH))
    return root


async def _add_children(provider: TreeProvider, branch: Tree, node: Node | None, remaining: int) -> None:
    if remaining <= 0:
        return
    for child in await provider.get_children(node):
        sub_branch = branch.add(node_label(child))
        await _add_children(provider, sub_branch, child, remaining - 1)


def _format_timestamp(value: int | None) -> str:
    if not value:
        return "-"
    # BullMQ stores milliseconds since the epoch
    return datetime.fromtimestamp(value / 1000).isoformat(sep=" ", timespec="seconds")


def render_job(job: JobSnapshot, status: JobState | None = None) -> Group:
    table = Table(title=f"Job {escape(job.id)}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Name", escape(job.name or "-"))
    if status is not None:
        style = STATUS_STYLES[status]
        table.add_row("Status", f"[{style}]{status.value}[/{style}]")
    table.add_row("Created", _format_timestamp(job.timestamp))
    table.add_row("Processed", _format_timestamp(job.processed_on))
    table.add_row("Finished", _format_timestamp(job.finished_on))
    table.add_row("Attempts", str(job.attempts_made))
    table.add_row("Progress", escape(str(job.progress)))
    table.add_row("Delay", f"{job.delay} ms")
    table.add_row("Priority", str(job.priority))
    if job.failed_reason:
        table.add_row("Failed reason", f"[red]{escape(job.failed_reason)}[/red]")

    parts = [table, "[bold]Data:[/bold]", Pretty(job.data)]
    if job.opts:
        parts += ["[bold]Options:[/bold]", Pretty(job.opts)]
    if job.returnvalue is not None:
        parts += ["[bold]Return value:[/bold]", Pretty(job.returnvalue)]
    if job.stacktrace:
        parts += ["[bold]Stacktrace:[/bold]", escape("\n".join(job.stacktrace))]
    return Group(*parts)
