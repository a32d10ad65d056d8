"""
Command Line Interface for Dossier Analyst.

This module starts the operator console and inspects its configuration.
"""

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from dossier import __version__
from dossier.ai.client import RedactingFilter
from dossier.config import ConfigurationError, get_config, has_api_key

logger = logging.getLogger(__name__)

console = Console()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def print_header(text: str) -> None:
    """Print a styled header."""
    console.print()
    console.print(Panel(text, style="bold cyan", expand=False))
    console.print()


def print_error(text: str) -> None:
    """Print red error message."""
    console.print(f"[bold red]✗[/bold red] {text}")


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Route all logging through rich, with secrets redacted."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(console=console, show_path=debug)
    handler.addFilter(RedactingFilter())
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


# =============================================================================
# COMMANDS
# =============================================================================


@click.group()
@click.version_option(__version__, prog_name="Dossier Analyst")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """Dossier Analyst - multimodal intelligence analysis console."""
    config = get_config()
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    configure_logging(verbose=verbose or config.verbose, debug=debug or config.debug)


@cli.command()
@click.option("--host", default=None, help="Interface to bind (default from config)")
@click.option("--port", type=int, default=None, help="Port to bind (default from config)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the analysis console web server."""
    import uvicorn

    from dossier.web.app import create_app

    config = ctx.obj["config"]
    host = host or config.web.host
    port = port or config.web.port

    try:
        app = create_app(config=config)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(1)

    print_header(f"{config.web.title}\nhttp://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.group(name="config")
def config_group() -> None:
    """Inspect configuration."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration (the API key is never printed)."""
    config = ctx.obj["config"]

    table = Table(title="Dossier Analyst configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("ai.model_name", config.ai.model_name)
    table.add_row("ai.timeout_seconds", str(config.ai.timeout_seconds))
    table.add_row(
        "ai.temperature",
        "model default" if config.ai.temperature is None else str(config.ai.temperature),
    )
    table.add_row("ai.response_language", config.ai.response_language)
    table.add_row("web.host", config.web.host)
    table.add_row("web.port", str(config.web.port))
    table.add_row("debug", str(config.debug))
    table.add_row(
        "api key",
        "[green]configured[/green]" if has_api_key() else "[red]missing[/red]",
    )

    console.print(table)


if __name__ == "__main__":
    cli()
