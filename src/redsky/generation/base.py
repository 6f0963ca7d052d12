"""Shared pieces for experiment sources.

A source is a record of optional capabilities. ``update`` mutates the
experiment (usually its trial job template), ``metrics`` contributes metric
definitions and ``read`` emits auxiliary manifests. A capability left as
None is simply not supported by that source.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from redsky.errors import ResourceReadError
from redsky.models.application import Application, Goal, Objective, Scenario
from redsky.models.config import ProjectConfig
from redsky.models.experiment import Experiment, Metric, MetricType


@dataclass
class Source:
    """Capability table for one experiment source."""

    name: str
    update: Callable[[Experiment], None] | None = None
    metrics: Callable[[], list[Metric]] | None = None
    read: Callable[[], list[dict[str, Any]]] | None = None


@dataclass
class SourceContext:
    """Inputs available to a source while generating one experiment."""

    application: Application
    scenario: Scenario | None = None
    objective: Objective | None = None
    config: ProjectConfig = field(default_factory=ProjectConfig)
    working_dir: Path = field(default_factory=Path.cwd)


_DEFAULT_GOAL_NAMES = {
    "duration": "duration",
    "requests": "cost",
    "prometheus": "prometheus",
    "latency": "latency",
    "error_rate": "error-rate",
}


def new_goal_metric(goal: Goal, query: str) -> Metric:
    """Create a Prometheus metric for a goal."""
    return Metric(
        name=goal.name or _DEFAULT_GOAL_NAMES.get(goal.kind, "metric"),
        type=MetricType.PROMETHEUS,
        query=query,
        minimize=True,
        optimize=goal.optimize,
    )


def ensure_trial_job_pod(experiment: Experiment) -> dict[str, Any]:
    """Return the trial job's pod template, creating empty structure as needed."""
    spec = experiment.spec.trial_template.spec
    if spec.job_template is None:
        spec.job_template = {}
    job_spec = spec.job_template.setdefault("spec", {})
    pod = job_spec.setdefault("template", {})
    pod.setdefault("spec", {})
    return pod


_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"90s"`` or ``"1h30m"`` into seconds.

    A bare number is taken as seconds.

    Raises:
        ValueError: If the text is not a duration.
    """
    text = text.strip()
    sign = -1.0 if text.startswith("-") else 1.0
    body = text.lstrip("+-")
    try:
        return sign * float(body)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(body):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if not body or pos != len(body):
        raise ValueError(f"invalid duration {text!r}")
    return sign * total


def load_application_data(ctx: SourceContext, location: str) -> str:
    """Read a file referenced by the application (relative path or URL).

    Raises:
        ResourceReadError: If the file or URL cannot be read.
    """
    if location.startswith(("http://", "https://")):
        try:
            response = httpx.get(location, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ResourceReadError(str(exc), locator=location) from exc
        return response.text

    path = Path(location)
    if not path.is_absolute():
        path = ctx.working_dir / path
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ResourceReadError(exc.strerror or str(exc), locator=str(path)) from exc

