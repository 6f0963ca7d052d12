"""Resource request ("cost") goals."""

from __future__ import annotations

from decimal import Decimal

from redsky.errors import GenerationError
from redsky.generation.base import Source, SourceContext, new_goal_metric
from redsky.models.application import Goal
from redsky.models.experiment import Metric, MetricType, ResourceTarget
from redsky.models.meta import parse_label_selector
from redsky.quantity import Quantity

# Used when neither the goal nor the cloud provider supplies weights
DEFAULT_COST_WEIGHTS = {"cpu": "17", "memory": "2"}


def _format_weight(w: float) -> str:
    return format(Decimal(repr(w)).normalize(), "f")


def requests_query(weights: dict[str, str]) -> str:
    """Build the templated resource request query for per-resource weights.

    Memory weights are per byte, so they are scaled down by 1000**4; every
    other weight is scaled down by 1000.
    """
    parts = []
    for name in sorted(weights):
        scale = 4 if name == "memory" else 1
        w = Quantity.parse(weights[name]).value() / 1000**scale
        parts.append(f"{name}={_format_weight(w)}")
    return '{{ resource_requests(target, "%s") }}' % ",".join(parts)


def requests_metric(goal: Goal, ctx: SourceContext) -> Metric:
    """Metric summing the weighted requests of the selected pods.

    Raises:
        GenerationError: If the goal's selector cannot be parsed.
    """
    weights = dict(goal.requests.weights)
    if not weights and ctx.application.cloud_provider is not None:
        weights = ctx.application.cloud_provider.cost()
    if not weights:
        weights = dict(DEFAULT_COST_WEIGHTS)

    try:
        selector = parse_label_selector(goal.requests.selector)
    except ValueError as exc:
        raise GenerationError(str(exc)) from exc

    m = new_goal_metric(goal, requests_query(weights))
    m.type = MetricType.KUBERNETES
    m.target = ResourceTarget(api_version="v1", kind="PodList", label_selector=selector)
    return m


def requests_source(goal: Goal, ctx: SourceContext) -> Source:
    def metrics() -> list[Metric]:
        if goal.implemented or goal.requests is None:
            return []
        return [requests_metric(goal, ctx)]

    return Source(name="requests", metrics=metrics)
