from pathlib import Path

import typer

from queue_explorer.cli.commands import browse, connections, jobs, queues
from queue_explorer.cli.common import load_settings, options
from queue_explorer.logging_config import setup_logging

app = typer.Typer(
    name="queue-explorer",
    help="Browse and manage BullMQ queues stored in Redis",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(connections.app, name="connections", help="Manage the connections file")

app.command()(browse.tree)
app.command()(browse.refresh)
app.command()(queues.drain)
app.command()(queues.obliterate)
app.command(name="create-job")(queues.create_job)
app.command(name="show-job")(jobs.show_job)
app.command(name="edit-job")(jobs.edit_job)
app.command(name="remove-job")(jobs.remove_job)
app.command(name="promote-job")(jobs.promote_job)


@app.callback()
def main(
    config: Path | None = typer.Option(
        None,
        "--config",
        envvar="QUEUE_EXPLORER_CONNECTIONS_FILE",
        help="Connections file (YAML)",
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_format: str | None = typer.Option(None, "--log-format", help="console or json"),
):
    """Explore BullMQ queues: connections, queues, job statuses and jobs."""
    options.connections_file = config
    options.log_level = log_level
    options.log_format = log_format

    settings = load_settings()
    setup_logging(log_format=settings.log_format, log_level=settings.log_level)


if __name__ == "__main__":
    app()
