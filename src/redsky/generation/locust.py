"""Locust load test scenarios.

The trial job runs the Locust image against the application's ingress,
with the locustfile mounted from a ConfigMap. Latency and error rate goals
become queries against the metrics Locust pushes for the trial.
"""

from __future__ import annotations

from typing import Any

from redsky.errors import GenerationError
from redsky.generation.base import (
    Source,
    SourceContext,
    ensure_trial_job_pod,
    load_application_data,
    new_goal_metric,
    parse_duration,
)
from redsky.models.application import (
    ERROR_RATE_REQUESTS,
    LATENCY_MAXIMUM,
    LATENCY_MEAN,
    LATENCY_MINIMUM,
    LATENCY_PERCENTILE_50,
    LATENCY_PERCENTILE_95,
    LATENCY_PERCENTILE_99,
    LocustScenario,
    normalize_latency,
)
from redsky.models.experiment import Experiment, Metric

LOCUSTFILE_MOUNT_PATH = "/mnt/locust"

_LATENCY_METRICS = {
    LATENCY_MINIMUM: "min_response_time",
    LATENCY_MAXIMUM: "max_response_time",
    LATENCY_MEAN: "average_response_time",
    LATENCY_PERCENTILE_50: "p50",
    LATENCY_PERCENTILE_95: "p95",
    LATENCY_PERCENTILE_99: "p99",
}

_INSTANCE = '{job="trialRun",instance="{{ trial.metadata.name }}"}'


def locust_latency(latency_type: str) -> str:
    """Metric name Locust reports for a latency type, or '' if unsupported."""
    return _LATENCY_METRICS.get(normalize_latency(latency_type), "")


def _config_map_name(ctx: SourceContext) -> str:
    return f"{ctx.scenario.name}-locustfile"


def _env(locust: LocustScenario) -> list[dict[str, str]]:
    env = []
    if locust.users is not None:
        env.append({"name": "NUM_USERS", "value": "%d" % locust.users})
    if locust.spawn_rate is not None:
        env.append({"name": "SPAWN_RATE", "value": "%d" % locust.spawn_rate})
    if locust.run_time is not None:
        env.append({"name": "RUN_TIME", "value": "%.0f" % parse_duration(locust.run_time)})
    return env


def locust_source(ctx: SourceContext) -> Source:
    """Build the Locust source for the context's scenario."""

    def update(experiment: Experiment) -> None:
        if ctx.scenario is None or ctx.scenario.locust is None:
            return

        pod = ensure_trial_job_pod(experiment)["spec"]
        pod["containers"] = [
            {
                "name": "locust",
                "image": ctx.config.trial_job_image("locust"),
                "env": _env(ctx.scenario.locust),
                "volumeMounts": [
                    {
                        "name": "locustfile",
                        "readOnly": True,
                        "mountPath": LOCUSTFILE_MOUNT_PATH,
                    }
                ],
            }
        ]
        pod["volumes"] = [
            {"name": "locustfile", "configMap": {"name": _config_map_name(ctx)}},
        ]

        ingress_url = ""
        if ctx.application.ingress is not None:
            ingress_url = ctx.application.ingress.url
        if not ingress_url:
            raise GenerationError("ingress must be configured when using Locust scenarios")
        pod["containers"][0]["env"].append({"name": "HOST", "value": ingress_url})

    def metrics() -> list[Metric]:
        result: list[Metric] = []
        if ctx.objective is None:
            return result

        for goal in ctx.objective.goals:
            if goal.implemented:
                continue
            if goal.latency is not None:
                name = locust_latency(goal.latency.latency_type)
                if name:
                    result.append(new_goal_metric(goal, f"scalar({name}{_INSTANCE})"))
            elif goal.error_rate is not None:
                if goal.error_rate.error_rate_type == ERROR_RATE_REQUESTS:
                    query = f"scalar(failure_count{_INSTANCE} / request_count{_INSTANCE})"
                    result.append(new_goal_metric(goal, query))
        return result

    def read() -> list[dict[str, Any]]:
        locustfile = ctx.scenario.locust.locustfile if ctx.scenario.locust else ""
        if not locustfile:
            raise GenerationError(f"missing Locust file for scenario {ctx.scenario.name!r}")
        return [
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {"name": _config_map_name(ctx)},
                "data": {"locustfile.py": load_application_data(ctx, locustfile)},
            }
        ]

    return Source(name="locust", update=update, metrics=metrics, read=read)
