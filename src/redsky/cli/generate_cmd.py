"""redsky generate -- produce Application and Experiment manifests."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from redsky.application.generator import ApplicationGenerator
from redsky.application.resources import ResourceReader
from redsky.cli.output import print_manifests
from redsky.errors import RedSkyError
from redsky.generation.generator import ExperimentGenerator
from redsky.loader.validator import validate_application
from redsky.loader.yaml_parser import YAMLParseError, read_manifest_files
from redsky.models.application import APPLICATION_API_VERSION, ResourceLocator
from redsky.models.config import load_project_config

logger = logging.getLogger(__name__)

generate_app = typer.Typer(help="Generate Red Sky manifests.", no_args_is_help=True)


@generate_app.command("application")
def generate_application(
    resources: Optional[list[str]] = typer.Option(
        None, "--resources", "-r", help="Resource files, directories or URLs (- for stdin)"
    ),
    name: str = typer.Option("", "--name", help="Application name"),
    objectives: Optional[list[str]] = typer.Option(
        None, "--objectives", help="Objective names to include"
    ),
) -> None:
    """Scan resources and print an Application."""
    config = load_project_config()
    generator = ApplicationGenerator(
        name=name,
        resources=[ResourceLocator.model_validate(r) for r in resources or []],
        objectives=list(objectives or []),
        default_reader=sys.stdin,
        depth=config.resource_depth,
    )
    try:
        docs = generator.execute()
    except RedSkyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(print_manifests(docs))


@generate_app.command("experiment")
def generate_experiment(
    filenames: list[str] = typer.Option(
        ..., "--filename", "-f", help="Application file (- for stdin)"
    ),
    name: str = typer.Option("", "--name", help="Experiment name"),
    scenario: str = typer.Option("", "--scenario", "-s", help="Scenario name"),
    objective: str = typer.Option("", "--objective", help="Objective name"),
) -> None:
    """Generate an Experiment (and supporting resources) from an Application."""
    config = load_project_config()
    try:
        manifests = read_manifest_files(filenames, stdin=sys.stdin)
    except (YAMLParseError, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    raw = next(
        (
            d
            for d in manifests
            if d.get("kind") == "Application" and d.get("apiVersion") == APPLICATION_API_VERSION
        ),
        None,
    )
    if raw is None:
        typer.echo("Error: no Application found in input", err=True)
        raise typer.Exit(code=1)

    application, errors = validate_application(raw, {})
    if application is None:
        for e in errors:
            typer.echo(f"Error: {e.field}: {e.message}", err=True)
        raise typer.Exit(code=1)

    first = filenames[0]
    working_dir = Path(first).resolve().parent if first != "-" else Path.cwd()
    try:
        resources = ResourceReader(
            default_reader=sys.stdin, depth=config.resource_depth, working_dir=working_dir
        ).read(application.resources)
        docs = ExperimentGenerator(
            application=application,
            experiment_name=name,
            scenario=scenario,
            objective=objective,
            resources=resources,
            working_dir=working_dir,
            config=config,
        ).generate()
    except RedSkyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    logger.info("Generated %d manifests", len(docs))
    typer.echo(print_manifests(docs))
