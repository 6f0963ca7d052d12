"""Custom pod scenarios.

The user supplies the trial pod (or just an image); the generated
experiment only fills in timing and container names.
"""

from __future__ import annotations

import copy

from redsky.generation.base import Source, SourceContext, ensure_trial_job_pod
from redsky.generation.requests import requests_metric
from redsky.models.experiment import Experiment, Metric


def _container_name(image: str) -> str:
    name = image[image.rfind("/") + 1 :]
    pos = name.find(":")
    if pos > 0:
        name = name[:pos]
    return name


def custom_source(ctx: SourceContext) -> Source:
    """Build the custom source for the context's scenario."""

    def update(experiment: Experiment) -> None:
        if ctx.scenario is None or ctx.scenario.custom is None:
            return
        custom = ctx.scenario.custom
        trial_spec = experiment.spec.trial_template.spec

        if custom.pod_template is not None:
            pod = ensure_trial_job_pod(experiment)
            pod.clear()
            pod.update(copy.deepcopy(custom.pod_template))
            pod.setdefault("spec", {})

        if custom.initial_delay_seconds > 0:
            trial_spec.initial_delay_seconds = custom.initial_delay_seconds
        if custom.approximate_runtime_seconds > 0:
            trial_spec.approximate_runtime = f"{custom.approximate_runtime_seconds}s"

        if custom.image:
            containers = ensure_trial_job_pod(experiment)["spec"].setdefault("containers", [])
            if not containers:
                containers.append({})
            containers[0]["image"] = custom.image

        # Back-fill container names missing from the pod template
        if trial_spec.job_template is not None:
            for container in ensure_trial_job_pod(experiment)["spec"].get("containers", []):
                if not container.get("name"):
                    container["name"] = _container_name(container.get("image", ""))

    def metrics() -> list[Metric]:
        result: list[Metric] = []
        if ctx.objective is None:
            return result
        for goal in ctx.objective.goals:
            if goal.implemented or goal.requests is None:
                continue
            if ctx.scenario is not None and ctx.scenario.custom.use_push_gateway:
                continue
            result.append(requests_metric(goal, ctx))
        return result

    return Source(name="custom", update=update, metrics=metrics)
