"""Generate an Experiment from an Application.

The generator picks one scenario and one objective from the application,
synthesizes parameters from the supplied workload manifests, collects
metrics from the scenario and goal sources, lets the sources update the
trial template and finally gathers any auxiliary manifests they need.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

from redsky.errors import GenerationError
from redsky.generation import get_source
from redsky.generation.base import Source, SourceContext
from redsky.generation.container_resources import container_resource_parameters
from redsky.generation.duration import duration_source
from redsky.generation.prometheus import BuiltInPrometheus, prometheus_source
from redsky.generation.requests import requests_source
from redsky.models.application import Application, Goal, Objective, Scenario
from redsky.models.config import ProjectConfig
from redsky.models.experiment import Experiment
from redsky.models.meta import (
    LABEL_APPLICATION,
    LABEL_OBJECTIVE,
    LABEL_SCENARIO,
    ObjectMeta,
    to_manifest,
)

logger = logging.getLogger(__name__)

_Named = TypeVar("_Named", Scenario, Objective)


def _select(items: list[_Named], name: str, what: str) -> _Named | None:
    if not items:
        if name:
            raise GenerationError(f"unknown {what} {name!r}")
        return None
    if not name:
        if len(items) > 1:
            names = [i.name for i in items]
            raise GenerationError(f"a {what} name is required (one of {names})")
        return items[0]
    for item in items:
        if item.name == name:
            return item
    raise GenerationError(f"unknown {what} {name!r}")


class ExperimentGenerator:
    """Turns an Application into ``[Experiment, *auxiliary manifests]``."""

    def __init__(
        self,
        application: Application,
        experiment_name: str = "",
        scenario: str = "",
        objective: str = "",
        resources: list[dict[str, Any]] | None = None,
        working_dir: Path | None = None,
        config: ProjectConfig | None = None,
    ) -> None:
        self.application = application
        self.experiment_name = experiment_name
        self.scenario = scenario
        self.objective = objective
        self.resources = resources or []
        self.working_dir = working_dir or Path.cwd()
        self.config = config or ProjectConfig()

    def _context(self, scenario: Scenario | None, objective: Objective | None) -> SourceContext:
        return SourceContext(
            application=self.application,
            scenario=scenario,
            objective=objective,
            config=self.config,
            working_dir=self.working_dir,
        )

    def _goal_sources(self, goal: Goal, scenario: Scenario | None, ctx: SourceContext) -> list[Source]:
        if goal.duration is not None:
            return [duration_source(goal)]
        if goal.prometheus is not None:
            return [prometheus_source(goal)]
        if goal.requests is not None and (scenario is None or scenario.custom is None):
            return [requests_source(goal, ctx)]
        return []

    def generate(self) -> list[dict[str, Any]]:
        experiment, extra = self.build()
        return [to_manifest(experiment), *extra]

    def build(self) -> tuple[Experiment, list[dict[str, Any]]]:
        """Build the experiment model and the auxiliary manifests.

        Raises:
            GenerationError: If the application cannot produce an experiment.
        """
        app = self.application
        app.apply_defaults()
        scenario = _select(app.scenarios, self.scenario, "scenario")
        objective = _select(app.objectives, self.objective, "objective")

        name = self.experiment_name or "-".join(
            n for n in (app.metadata.name, scenario and scenario.name, objective and objective.name) if n
        )
        labels = {LABEL_APPLICATION: app.metadata.name}
        if scenario is not None:
            labels[LABEL_SCENARIO] = scenario.name
        if objective is not None:
            labels[LABEL_OBJECTIVE] = objective.name
        experiment = Experiment(
            metadata=ObjectMeta(name=name, namespace=app.metadata.namespace, labels=labels)
        )

        parameters, patches = container_resource_parameters(
            self.resources, app.parameters.container_resources if app.parameters else None
        )
        experiment.spec.parameters.extend(parameters)
        experiment.spec.patches.extend(patches)

        scenario_source: Source | None = None
        if scenario is not None:
            scenario_source = get_source(scenario.kind, self._context(scenario, objective))

        for goal in objective.goals if objective is not None else []:
            ctx = self._context(scenario, Objective(name=objective.name, goals=[goal]))
            sources = self._goal_sources(goal, scenario, ctx)
            if scenario is not None:
                sources.insert(0, get_source(scenario.kind, ctx))
            for source in sources:
                if source.metrics is not None:
                    experiment.spec.metrics.extend(source.metrics())

        builtin = BuiltInPrometheus().as_source()
        for source in (scenario_source, builtin):
            if source is not None and source.update is not None:
                source.update(experiment)

        extra: list[dict[str, Any]] = []
        for source in (scenario_source, builtin):
            if source is not None and source.read is not None:
                extra.extend(source.read())

        logger.debug(
            "Generated experiment %s: %d parameters, %d metrics, %d extra resources",
            name,
            len(experiment.spec.parameters),
            len(experiment.spec.metrics),
            len(extra),
        )
        return experiment, extra
