from rich.markup import escape
from rich.table import Table
import typer

from queue_explorer.cli.common import console, load_settings
from queue_explorer.config import (
    dump_connection_definitions,
    load_connection_definitions,
    save_connection_definitions,
)
from queue_explorer.errors import ConfigurationError
from queue_explorer.models import ConnectionDefinition, RedisConfig

app = typer.Typer()

EXAMPLE_CONNECTION = ConnectionDefinition(
    name="local-redis",
    prefix="bull",
    config=RedisConfig(host="localhost", port=6379),
)


def _describe_target(definition: ConnectionDefinition) -> str:
    config = definition.config
    if config.url:
        return config.url
    return f"{config.host}:{config.port}/{config.db}"


@app.command("list")
def list_connections():
    """List the configured connections, in file order."""
    settings = load_settings()
    try:
        definitions = load_connection_definitions(settings.connections_file)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    if not definitions:
        console.print(
            f"[yellow]No connections configured in {escape(str(settings.connections_file))}[/yellow]"
        )
        return

    table = Table(title=f"Connections ({settings.connections_file})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Target", style="magenta")
    table.add_column("Prefix", style="green")

    for definition in definitions:
        table.add_row(
            escape(definition.name),
            escape(_describe_target(definition)),
            escape(definition.prefix or "bull"),
        )

    console.print(table)


@app.command()
def template(
    write: bool = typer.Option(
        False, "--write", help="Create the connections file with this content if it is missing"
    ),
):
    """Print a documented connections file."""
    content = dump_connection_definitions([EXAMPLE_CONNECTION])
    if not write:
        typer.echo(content, nl=False)
        return

    path = load_settings().connections_file
    if path.exists():
        console.print(f"[yellow]{escape(str(path))} already exists, not overwritten[/yellow]")
        return
    save_connection_definitions(path, [EXAMPLE_CONNECTION])
    console.print(f"[green]✓[/green] Created {escape(str(path))}")


@app.command()
def validate():
    """Check the connections file for errors."""
    path = load_settings().connections_file
    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] {escape(str(path))} does not exist")
        raise typer.Exit(code=1)

    try:
        definitions = load_connection_definitions(path)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    console.print(f"[green]✓[/green] {len(definitions)} connection(s) valid in {escape(str(path))}")
