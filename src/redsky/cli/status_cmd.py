"""redsky status -- summarize experiment phases from manifests."""

from __future__ import annotations

import sys

import typer
from rich.console import Console

from redsky.cli.output import render_status, status_json
from redsky.errors import RedSkyError
from redsky.experiment.phase import summarize_experiments
from redsky.loader.yaml_parser import YAMLParseError, read_manifest_files


def status(
    filenames: list[str] = typer.Option(
        ..., "--filename", "-f", help="Experiment and Trial manifests (- for stdin)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output summaries as JSON"),
) -> None:
    """Show the phase and trial counts of each experiment."""
    try:
        manifests = read_manifest_files(filenames, stdin=sys.stdin)
    except (YAMLParseError, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    try:
        summaries = summarize_experiments(manifests)
    except RedSkyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(status_json(summaries))
        return
    if not summaries:
        typer.echo("No experiments found.")
        return
    render_status(summaries, Console())
