"""redsky export -- render the patches for a remote trial."""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from redsky.api.client import ExperimentsAPI
from redsky.cli.output import patches_text
from redsky.errors import RedSkyError
from redsky.export import export_patches, find_experiment, get_trial_details
from redsky.loader.yaml_parser import YAMLParseError, read_manifest_files
from redsky.models.config import load_project_config
from redsky.models.remote import RemoteError


def export(
    trial_name: str = typer.Argument(..., help="Trial name (experimentName-trialNumber)"),
    filenames: list[str] = typer.Option(
        ..., "--filename", "-f", help="Experiment or Application manifests (- for stdin)"
    ),
    patch: bool = typer.Option(False, "--patch", "-p", help="Print only the JSON patches"),
) -> None:
    """Export the parameters of a trial as patches."""
    config = load_project_config()
    try:
        manifests = read_manifest_files(filenames, stdin=sys.stdin)
    except (YAMLParseError, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    first = filenames[0]
    working_dir = Path(first).resolve().parent if first != "-" else Path.cwd()
    try:
        with ExperimentsAPI(config.server_url, token=config.token) as api:
            details = get_trial_details(api, trial_name)
        experiment = find_experiment(manifests, details, working_dir=working_dir, config=config)
        patches = export_patches(experiment, details)
    except (RedSkyError, RemoteError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(patches_text(patches, patch_only=patch))
