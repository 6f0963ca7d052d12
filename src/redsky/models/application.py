"""Application data models.

These models encode the user-facing YAML contract for describing a
workload: where its resources live, how to exercise it (scenarios) and
what to optimize for (objectives). Unknown keys are rejected so typos are
reported instead of silently ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, model_validator

from redsky.models.meta import KubeModel, ObjectMeta, QuantityText

APPLICATION_API_VERSION = "apps.redskyops.dev/v1alpha1"
APPLICATION_GROUP = "apps.redskyops.dev"


class AppModel(KubeModel):
    """Base for user-authored models."""

    model_config = {"extra": "forbid"}


# ---------------------------------------------------------------------------
# Resource locators
# ---------------------------------------------------------------------------


class ResourceSource(AppModel):
    """Files, directories, URLs or ``-`` (standard input)."""

    resources: list[str] = Field(default_factory=list)


class KubernetesSource(AppModel):
    """Objects selected from a live cluster."""

    namespaces: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    label_selector: str = ""


class ResourceLocator(AppModel):
    """Where to find some of the application's manifests.

    A bare string is shorthand for a single-entry ``resource`` locator.
    """

    resource: ResourceSource | None = None
    kubernetes: KubernetesSource | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"resource": {"resources": [data]}}
        return data


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class LocustScenario(AppModel):
    locustfile: str = ""
    users: int | None = None
    spawn_rate: int | None = None
    run_time: str | None = None


class CustomScenario(AppModel):
    pod_template: dict[str, Any] | None = None
    image: str = ""
    initial_delay_seconds: int = 0
    approximate_runtime_seconds: int = 0
    use_push_gateway: bool = False


class Scenario(AppModel):
    """A named load strategy; exactly one kind is set."""

    name: str = ""
    locust: LocustScenario | None = None
    custom: CustomScenario | None = None

    @model_validator(mode="after")
    def _exactly_one_kind(self) -> Scenario:
        kinds = [k for k in ("locust", "custom") if getattr(self, k) is not None]
        if len(kinds) != 1:
            raise ValueError(
                f"scenario must set exactly one of locust, custom (got {kinds or 'none'})"
            )
        return self

    @property
    def kind(self) -> str:
        return "locust" if self.locust is not None else "custom"


# ---------------------------------------------------------------------------
# Objectives and goals
# ---------------------------------------------------------------------------

LATENCY_MINIMUM = "minimum"
LATENCY_MAXIMUM = "maximum"
LATENCY_MEAN = "mean"
LATENCY_PERCENTILE_50 = "percentile_50"
LATENCY_PERCENTILE_95 = "percentile_95"
LATENCY_PERCENTILE_99 = "percentile_99"

_LATENCY_ALIASES: dict[str, str] = {
    "min": LATENCY_MINIMUM,
    "minimum": LATENCY_MINIMUM,
    "max": LATENCY_MAXIMUM,
    "maximum": LATENCY_MAXIMUM,
    "mean": LATENCY_MEAN,
    "average": LATENCY_MEAN,
    "avg": LATENCY_MEAN,
    "median": LATENCY_PERCENTILE_50,
    "p50": LATENCY_PERCENTILE_50,
    "percentile_50": LATENCY_PERCENTILE_50,
    "p95": LATENCY_PERCENTILE_95,
    "percentile_95": LATENCY_PERCENTILE_95,
    "p99": LATENCY_PERCENTILE_99,
    "percentile_99": LATENCY_PERCENTILE_99,
}

DURATION_TRIAL = "trial"
ERROR_RATE_REQUESTS = "requests"


def normalize_latency(latency_type: str) -> str:
    """Map the accepted spellings of a latency type onto its canonical name.

    Unrecognized values are returned unchanged.
    """
    key = latency_type.strip().lower().replace("-", "_")
    return _LATENCY_ALIASES.get(key, latency_type)


class DurationGoal(AppModel):
    duration_type: str = DURATION_TRIAL


class RequestsGoal(AppModel):
    selector: str = ""
    weights: dict[str, QuantityText] = Field(default_factory=dict)


class PrometheusGoal(AppModel):
    query: str
    url: str = ""
    maximize: bool = False


class LatencyGoal(AppModel):
    latency_type: str


class ErrorRateGoal(AppModel):
    error_rate_type: str = ERROR_RATE_REQUESTS


_GOAL_KINDS = ("duration", "requests", "prometheus", "latency", "error_rate")


class Goal(AppModel):
    """One measurable target; at most one goal kind is set."""

    name: str = ""
    optimize: bool | None = None
    implemented: bool = False
    duration: DurationGoal | None = None
    requests: RequestsGoal | None = None
    prometheus: PrometheusGoal | None = None
    latency: LatencyGoal | None = None
    error_rate: ErrorRateGoal | None = None

    @model_validator(mode="after")
    def _at_most_one_kind(self) -> Goal:
        kinds = [k for k in _GOAL_KINDS if getattr(self, k) is not None]
        if len(kinds) > 1:
            raise ValueError(f"goal must set at most one kind (got {kinds})")
        return self

    @property
    def kind(self) -> str:
        for k in _GOAL_KINDS:
            if getattr(self, k) is not None:
                return k
        return "implemented" if self.implemented else ""


class Objective(AppModel):
    name: str = ""
    goals: list[Goal] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


class Ingress(AppModel):
    url: str = ""


class ProviderCost(AppModel):
    cost: dict[str, QuantityText] = Field(default_factory=dict)


class CloudProvider(AppModel):
    """Per-resource cost hints used to weight resource requests."""

    generic: ProviderCost | None = None
    gcp: ProviderCost | None = None
    aws: ProviderCost | None = None

    def cost(self) -> dict[str, str]:
        for provider in (self.gcp, self.aws, self.generic):
            if provider is not None and provider.cost:
                return dict(provider.cost)
        return {}


class ContainerResources(AppModel):
    """Which containers get cpu/memory parameters."""

    label_selector: str = ""
    resources: list[str] = Field(default_factory=lambda: ["cpu", "memory"])


class Parameters(AppModel):
    container_resources: ContainerResources | None = None


class Application(AppModel):
    """A user-authored description of a workload and its tunable surface."""

    api_version: str = APPLICATION_API_VERSION
    kind: str = "Application"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    resources: list[ResourceLocator] = Field(default_factory=list)
    parameters: Parameters | None = None
    ingress: Ingress | None = None
    cloud_provider: CloudProvider | None = None
    scenarios: list[Scenario] = Field(default_factory=list)
    objectives: list[Objective] = Field(default_factory=list)

    def apply_defaults(self) -> None:
        """Name unnamed scenarios and objectives."""
        for scenario in self.scenarios:
            if not scenario.name:
                scenario.name = "default"

        for objective in self.objectives:
            if objective.name:
                continue
            for goal in objective.goals:
                if goal.requests is not None:
                    objective.name = "cost"
                    break
                if goal.latency is not None:
                    objective.name = "latency"
                    break
