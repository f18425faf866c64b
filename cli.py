"""
CLI tool for the signaling relay.

Provides commands for inspecting the registered message handlers and for
running the server.
"""

import logging

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rendezvous.api.ws.constants import Event
from rendezvous.routing import event_router
from rendezvous.settings import app_settings
from rendezvous.uvicorn_filters import ExcludeMetricsFilter

# Initialize Typer app with help text
typer_app = typer.Typer(
    name="rendezvous",
    help="Signaling relay CLI - inspect handlers and run the server",
    add_completion=False,
)
console = Console()


def _missing_kinds() -> list[Event]:
    return [kind for kind in Event if not event_router.has_handler(kind)]


@typer_app.command(name="ws-handlers")
def ws_handlers():
    """
    Display a table of every inbound message kind and its handler.

    Example:
        python cli.py ws-handlers
    """
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Registered Signaling Handlers[/bold cyan]",
            border_style="cyan",
        )
    )
    console.print()

    table = Table(
        "Kind",
        "Handler Path",
        title="Signaling Handlers Registry",
        show_lines=True,
    )

    for kind in Event:
        handler = event_router.handlers_registry.get(kind)

        if not handler:
            table.add_row(
                f"[dim]{kind.value} - {kind.name}[/dim]",
                "[red]No handler registered[/red]",
            )
            continue

        table.add_row(
            f"[green]{kind.value} - {kind.name}[/green]",
            f"{handler.__module__}.[yellow]{handler.__name__}[/yellow]",
        )

    console.print(table)
    console.print()

    total = len(Event)
    registered = total - len(_missing_kinds())
    console.print(
        f"[bold]Summary:[/bold] {registered}/{total} handlers registered"
    )
    console.print()


@typer_app.command(name="validate-handlers")
def validate_handlers():
    """
    Validate that every inbound kind has a registered handler.

    Exits with code 1 when a kind is missing one; useful in CI.

    Example:
        python cli.py validate-handlers
    """
    missing = _missing_kinds()
    total = len(Event)

    if missing:
        console.print(
            f"[red]✗ Validation Failed[/red]: "
            f"{total - len(missing)}/{total} handlers registered\n"
        )
        for kind in missing:
            console.print(f"  [red]•[/red] {kind.value}")
        raise typer.Exit(code=1)

    console.print(
        Panel.fit(
            f"[green]✓ All handlers registered[/green]\n\nTotal: {total}/{total}",
            border_style="green",
            title="Success",
        )
    )


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option(app_settings.HOST, "--host", help="Bind address"),
    port: int = typer.Option(app_settings.PORT, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(
        False, "--reload", help="Restart on code changes (development)"
    ),
):
    """
    Run the signaling relay with uvicorn.

    Example:
        python cli.py serve --port 8000
    """
    logging.getLogger("uvicorn.access").addFilter(ExcludeMetricsFilter())
    console.print(
        f"[cyan]Signaling relay listening on[/cyan] "
        f"ws://{host}:{port}{app_settings.WS_PATH}"
    )
    uvicorn.run(
        "rendezvous:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    typer_app()
