"""Experiment and Trial manifest models.

These models encode the generated, low-level contract: tunable parameters,
constraints, metric queries, patch templates and the trial job template,
plus the trials that execute an experiment and their run-time status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from redsky.models.meta import (
    ANNOTATION_EXPERIMENT_URL,
    ANNOTATION_NEXT_TRIAL_URL,
    ANNOTATION_REPORT_TRIAL_URL,
    KubeModel,
    LabelSelector,
    ObjectMeta,
    ObjectReference,
    QuantityText,
)

EXPERIMENT_API_VERSION = "redskyops.dev/v1beta1"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ExperimentConditionType(str, Enum):
    COMPLETE = "Complete"
    FAILED = "Failed"


class TrialConditionType(str, Enum):
    COMPLETE = "Complete"
    FAILED = "Failed"
    SETUP_CREATED = "SetupCreated"
    SETUP_DELETED = "SetupDeleted"
    PATCHED = "Patched"
    READY = "Ready"
    OBSERVED = "Observed"


class MetricType(str, Enum):
    KUBERNETES = "kubernetes"
    PROMETHEUS = "prometheus"
    DATADOG = "datadog"
    JSONPATH = "jsonpath"


class PatchType(str, Enum):
    STRATEGIC = "strategic"
    MERGE = "merge"
    JSON = "json"


class Optimization(KubeModel):
    """A name/value hint passed verbatim to the optimizer."""

    name: str
    value: str


class Parameter(KubeModel):
    """A tunable input: integer bounds, or a categorical value set."""

    name: str
    min: int = 0
    max: int = 0
    values: list[str] = Field(default_factory=list)
    baseline: int | str | None = None

    @property
    def is_categorical(self) -> bool:
        return bool(self.values)


class OrderConstraint(KubeModel):
    lower_parameter: str
    upper_parameter: str


class SumConstraintParameter(KubeModel):
    name: str
    weight: QuantityText


class SumConstraint(KubeModel):
    is_upper_bound: bool = False
    bound: QuantityText
    parameters: list[SumConstraintParameter] = Field(default_factory=list)


class Constraint(KubeModel):
    """Either an ordering or a weighted sum restriction across parameters."""

    name: str = ""
    order: OrderConstraint | None = None
    sum: SumConstraint | None = None


class ResourceTarget(KubeModel):
    """Cluster objects a metric query is evaluated against."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    label_selector: LabelSelector | None = None


class Metric(KubeModel):
    name: str
    type: MetricType = MetricType.KUBERNETES
    query: str = ""
    error_query: str = ""
    minimize: bool = True
    optimize: bool | None = None
    url: str = ""
    target: ResourceTarget | None = None


class PatchTemplate(KubeModel):
    """A templated patch and the object it applies to."""

    type: PatchType = PatchType.STRATEGIC
    patch: str
    target_ref: ObjectReference | None = None


class HelmValue(KubeModel):
    name: str
    value: int | str = ""
    force_string: bool = False


class SetupTask(KubeModel):
    name: str
    image: str = ""
    args: list[str] = Field(default_factory=list)
    skip_create: bool = False
    skip_delete: bool = False
    helm_chart: str = ""
    helm_chart_version: str = ""
    helm_values: list[HelmValue] = Field(default_factory=list)


class Assignment(KubeModel):
    """A parameter value assigned to a trial (integer or string)."""

    name: str
    value: int | str


class Value(KubeModel):
    """A measured metric value with its error, in decimal string form."""

    name: str
    value: QuantityText
    error: QuantityText = ""


class TrialSpec(KubeModel):
    """Trial run specification; also used as the experiment's trial template."""

    experiment_ref: ObjectReference | None = None
    assignments: list[Assignment] = Field(default_factory=list)
    values: list[Value] = Field(default_factory=list)
    job_template: dict[str, Any] | None = None
    setup_tasks: list[SetupTask] = Field(default_factory=list)
    setup_service_account_name: str = ""
    initial_delay_seconds: int = 0
    approximate_runtime: str | None = None
    ttl_seconds_after_finished: int | None = None


class TrialTemplate(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: TrialSpec = Field(default_factory=TrialSpec)


class ExperimentSpec(KubeModel):
    replicas: int | None = None
    optimization: list[Optimization] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)
    metrics: list[Metric] = Field(default_factory=list)
    patches: list[PatchTemplate] = Field(default_factory=list)
    trial_template: TrialTemplate = Field(default_factory=TrialTemplate)


class ExperimentCondition(KubeModel):
    type: ExperimentConditionType
    status: ConditionStatus
    last_probe_time: datetime | None = None
    last_transition_time: datetime | None = None
    reason: str = ""
    message: str = ""


class ExperimentStatus(KubeModel):
    phase: str = ""
    active_trials: int = 0
    conditions: list[ExperimentCondition] = Field(default_factory=list)


class Experiment(KubeModel):
    """A generated experiment definition."""

    api_version: str = EXPERIMENT_API_VERSION
    kind: str = "Experiment"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ExperimentSpec = Field(default_factory=ExperimentSpec)
    status: ExperimentStatus = Field(default_factory=ExperimentStatus)

    @property
    def cursors(self) -> SyncCursors:
        return SyncCursors.from_annotations(self.metadata.annotations)


class TrialCondition(KubeModel):
    type: TrialConditionType
    status: ConditionStatus
    last_probe_time: datetime | None = None
    last_transition_time: datetime | None = None
    reason: str = ""
    message: str = ""


class TrialStatus(KubeModel):
    phase: str = ""
    assignments: str = ""
    values: str = ""
    start_time: datetime | None = None
    completion_time: datetime | None = None
    conditions: list[TrialCondition] = Field(default_factory=list)


class Trial(KubeModel):
    """One concrete run of an experiment."""

    api_version: str = EXPERIMENT_API_VERSION
    kind: str = "Trial"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: TrialSpec = Field(default_factory=TrialSpec)
    status: TrialStatus = Field(default_factory=TrialStatus)

    @property
    def cursors(self) -> SyncCursors:
        return SyncCursors.from_annotations(self.metadata.annotations)

    def is_finished(self) -> bool:
        """True once the trial has a true Complete or Failed condition."""
        return any(
            c.type in (TrialConditionType.COMPLETE, TrialConditionType.FAILED)
            and c.status == ConditionStatus.TRUE
            for c in self.status.conditions
        )


@dataclass
class SyncCursors:
    """Remote synchronization cursors stored on an object.

    Empty strings mean "not yet synced". The annotation map is only read
    and written at the serialization boundary (``from_annotations`` /
    ``write``).
    """

    self_url: str = ""
    next_trial_url: str = ""
    report_trial_url: str = ""

    @classmethod
    def from_annotations(cls, annotations: dict[str, str]) -> SyncCursors:
        return cls(
            self_url=annotations.get(ANNOTATION_EXPERIMENT_URL, ""),
            next_trial_url=annotations.get(ANNOTATION_NEXT_TRIAL_URL, ""),
            report_trial_url=annotations.get(ANNOTATION_REPORT_TRIAL_URL, ""),
        )

    @property
    def synced(self) -> bool:
        return bool(self.self_url)

    def write(self, annotations: dict[str, str]) -> None:
        """Store the experiment cursors; an empty next-trial URL is removed."""
        if self.self_url:
            annotations[ANNOTATION_EXPERIMENT_URL] = self.self_url
        if self.next_trial_url:
            annotations[ANNOTATION_NEXT_TRIAL_URL] = self.next_trial_url
        else:
            annotations.pop(ANNOTATION_NEXT_TRIAL_URL, None)
