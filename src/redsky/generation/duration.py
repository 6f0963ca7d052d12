"""Duration goals."""

from __future__ import annotations

from redsky.generation.base import Source, new_goal_metric
from redsky.models.application import DURATION_TRIAL, Goal
from redsky.models.experiment import Metric, MetricType


def duration_source(goal: Goal) -> Source:
    def metrics() -> list[Metric]:
        if goal.implemented or goal.duration is None:
            return []
        if goal.duration.duration_type != DURATION_TRIAL:
            return []
        m = new_goal_metric(goal, "{{ duration(start_time, completion_time) }}")
        m.type = MetricType.KUBERNETES
        return [m]

    return Source(name="duration", metrics=metrics)
