"""redsky validate -- check Application files.

Reports every problem in each file at once, with rich or CI-friendly
formatting.
"""

from __future__ import annotations

from pathlib import Path

import typer

from redsky.loader.errors import ErrorFormatter
from redsky.loader.validator import validate_application_file


def validate(
    files: list[Path] = typer.Argument(..., help="Application files to validate"),
    ci: bool = typer.Option(False, "--ci", help="CI-friendly concise output"),
) -> None:
    """Validate Application YAML files.

    Exits with code 0 if all files are valid, 1 otherwise.
    """
    formatter = ErrorFormatter(ci_mode=ci)

    for p in files:
        if not p.exists():
            typer.echo(f"Error: File not found: {p}", err=True)
            raise typer.Exit(code=1)

    valid_count = 0
    for filepath in files:
        _, errors = validate_application_file(filepath)
        if errors:
            source = filepath.read_text(encoding="utf-8")
            typer.echo(formatter.format_all(errors, source, str(filepath)), err=not ci)
        else:
            valid_count += 1
            formatter.print_success(str(filepath))

    typer.echo(f"\n{valid_count}/{len(files)} applications valid")
    if valid_count != len(files):
        raise typer.Exit(code=1)
