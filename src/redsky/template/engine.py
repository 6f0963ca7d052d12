"""Template rendering for patches, Helm values and metric queries.

Templates are Jinja2 text rendered against a snapshot of the trial. Two
contexts exist:

* patch context: ``trial`` (object metadata) and ``values`` (assignments)
* metric context: ``trial`` (full copy), ``target``, ``start_time``,
  ``completion_time``, ``range`` and ``values``

Rendering is pure; any parse or execution failure raises
TemplateRenderError carrying the template name, and no partial output is
returned.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined, TemplateError

from redsky.errors import TemplateRenderError
from redsky.models.experiment import HelmValue, Metric, PatchTemplate, Trial
from redsky.models.meta import ObjectMeta
from redsky.template.functions import FUNCTIONS


class _PatchLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as plain strings."""


_PatchLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _assignment_values(trial: Trial) -> dict[str, int | str]:
    return {a.name: a.value for a in trial.spec.assignments}


@dataclass
class PatchData:
    """A trial during patch evaluation."""

    trial: ObjectMeta
    values: dict[str, int | str] = field(default_factory=dict)

    @classmethod
    def from_trial(cls, trial: Trial) -> PatchData:
        return cls(trial=trial.metadata.model_copy(deep=True), values=_assignment_values(trial))


@dataclass
class MetricData:
    """A trial during metric evaluation."""

    trial: Trial
    target: Any = None
    start_time: datetime | None = None
    completion_time: datetime | None = None
    range: str = "0s"
    values: dict[str, int | str] = field(default_factory=dict)

    @classmethod
    def from_trial(cls, trial: Trial, target: Any = None) -> MetricData:
        start = trial.status.start_time
        completion = trial.status.completion_time
        seconds = 0.0
        if start is not None and completion is not None:
            seconds = max((completion - start).total_seconds(), 0.0)
        return cls(
            trial=trial.model_copy(deep=True),
            target=target,
            start_time=start,
            completion_time=completion,
            range="%.0fs" % seconds,
            values=_assignment_values(trial),
        )


class TemplateEngine:
    """Renders templates with the shared function table."""

    def __init__(self, functions: dict[str, Any] | None = None) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.globals.update(FUNCTIONS)
        if functions:
            self.env.globals.update(functions)

    def render_patch(self, patch: PatchTemplate, trial: Trial) -> str:
        """Render a patch template (YAML or JSON text) and return it as JSON."""
        name = patch.target_ref.name if patch.target_ref and patch.target_ref.name else "patch"
        text = self._render(name, patch.patch, vars(PatchData.from_trial(trial)))
        try:
            return json.dumps(yaml.load(text, Loader=_PatchLoader))
        except (yaml.YAMLError, TypeError, ValueError) as exc:
            raise TemplateRenderError(name, exc) from exc

    def render_helm_value(self, helm_value: HelmValue, trial: Trial) -> str:
        """Render a Helm value with the patch context."""
        return self._render(helm_value.name, str(helm_value.value), vars(PatchData.from_trial(trial)))

    def render_metric_queries(
        self, metric: Metric, trial: Trial, target: Any = None
    ) -> tuple[str, str]:
        """Render the metric query and its (possibly empty) error query."""
        data = vars(MetricData.from_trial(trial, target))
        query = self._render(metric.name, metric.query, data)
        error_query = self._render(metric.name, metric.error_query, data)
        return query, error_query

    def _render(self, name: str, text: str, data: dict[str, Any]) -> str:
        try:
            return self.env.from_string(text).render(**data)
        except (TemplateError, ValueError, TypeError, ArithmeticError) as exc:
            raise TemplateRenderError(name, exc) from exc
