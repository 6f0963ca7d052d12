"""Red Sky CLI entry point."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from redsky import __version__
from redsky.cli.export_cmd import export
from redsky.cli.generate_cmd import generate_app
from redsky.cli.label_cmd import label
from redsky.cli.status_cmd import status
from redsky.cli.validate_cmd import validate

app = typer.Typer(
    name="redsky",
    help="Generate and track optimization experiments",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(generate_app, name="generate")
app.command()(export)
app.command()(label)
app.command()(status)
app.command()(validate)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"redsky {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Generate and track optimization experiments."""
    configure_logging(verbose)
