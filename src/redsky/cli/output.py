"""Rich terminal output for status summaries and manifest streams."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.table import Table

from redsky.loader.yaml_parser import dump_manifests

if TYPE_CHECKING:
    from redsky.experiment.phase import ExperimentSummary
    from redsky.patch import PatchOperation


# Phase -> Rich style
_PHASE_STYLES: dict[str, str] = {
    "Running": "bold green",
    "Completed": "bold blue",
    "Failed": "bold red",
    "Deleted": "dim",
    "Paused": "yellow",
    "Idle": "cyan",
}


def render_status(summaries: list[ExperimentSummary], console: Console) -> None:
    """Render one row per experiment with its phase and trial counts."""
    table = Table(box=box.SIMPLE, padding=(0, 2))
    table.add_column("NAMESPACE")
    table.add_column("NAME", style="bold")
    table.add_column("PHASE")
    table.add_column("ACTIVE", justify="right")
    table.add_column("TOTAL", justify="right")

    for s in summaries:
        style = _PHASE_STYLES.get(s.phase)
        phase = f"[{style}]{s.phase}[/{style}]" if style else s.phase
        table.add_row(s.namespace, s.name, phase, str(s.active_trials), str(s.total_trials))
    console.print(table)


def status_json(summaries: list[ExperimentSummary]) -> str:
    return json.dumps([vars(s) for s in summaries], indent=2)


def print_manifests(docs: list[dict[str, Any]]) -> str:
    """Manifest stream text, ready to echo."""
    return dump_manifests(docs).rstrip("\n")


def patches_text(patches: list[PatchOperation], patch_only: bool) -> str:
    """JSON patches one per line, or a YAML list of targeted patches."""
    if patch_only:
        return "\n".join(p.patch for p in patches)
    return dump_manifests([{"patches": [p.to_dict() for p in patches]}]).rstrip("\n")
