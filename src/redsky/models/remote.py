"""Wire models for the remote optimization service.

These are structurally distinct from the cluster manifests: URLs travel in
response headers (kept on ``*Meta`` objects, never in the JSON body),
assignment values are wide integers or strings, and metric values are
floats instead of decimal strings.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def to_wire(self) -> dict:
        """Serialize to the JSON body sent to the service."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ErrorType(str, Enum):
    """Remote error kinds the caller can distinguish."""

    UNAUTHORIZED = "unauthorized"
    EXPERIMENT_NAME_INVALID = "experiment-name-invalid"
    EXPERIMENT_NAME_CONFLICT = "experiment-name-conflict"
    EXPERIMENT_INVALID = "experiment-invalid"
    EXPERIMENT_NOT_FOUND = "experiment-not-found"
    EXPERIMENT_STOPPED = "experiment-stopped"
    TRIAL_INVALID = "trial-invalid"
    TRIAL_UNAVAILABLE = "trial-unavailable"
    TRIAL_NOT_FOUND = "trial-not-found"
    TRIAL_ALREADY_REPORTED = "trial-already-reported"
    UNEXPECTED = "unexpected"


class RemoteError(Exception):
    """An error reported by the remote optimization service.

    Attributes:
        type: The error kind.
        message: Human-readable description.
        location: Optional URL the error refers to.
    """

    def __init__(self, type: ErrorType, message: str = "", location: str = "") -> None:
        self.type = type
        self.message = message
        self.location = location
        super().__init__(message or type.value)


class ParameterType(str, Enum):
    INTEGER = "int"
    DOUBLE = "double"
    CATEGORICAL = "categorical"


class ConstraintType(str, Enum):
    ORDER = "order"
    SUM = "sum"


class TrialState(str, Enum):
    STAGED = "staged"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class ExperimentMeta(WireModel):
    last_modified: datetime | None = None
    self_url: str = ""
    next_trial_url: str = ""
    trials_url: str = ""
    labels_url: str = ""


class Optimization(WireModel):
    name: str
    value: str


class Bounds(WireModel):
    min: str
    max: str


class RemoteParameter(WireModel):
    type: ParameterType
    name: str
    bounds: Bounds | None = None
    values: list[str] | None = None


class SumConstraintParameter(WireModel):
    name: str
    weight: float


class RemoteConstraint(WireModel):
    name: str = ""
    constraint_type: ConstraintType
    lower_parameter: str | None = None
    upper_parameter: str | None = None
    is_upper_bound: bool | None = None
    bound: float | None = None
    parameters: list[SumConstraintParameter] | None = None


class RemoteMetric(WireModel):
    name: str
    minimize: bool = True


class RemoteExperiment(WireModel):
    meta: ExperimentMeta = Field(default_factory=ExperimentMeta, exclude=True)
    display_name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    optimization: list[Optimization] = Field(default_factory=list)
    parameters: list[RemoteParameter] = Field(default_factory=list)
    constraints: list[RemoteConstraint] = Field(default_factory=list)
    metrics: list[RemoteMetric] = Field(default_factory=list)


class TrialMeta(WireModel):
    self_url: str = ""
    labels_url: str = ""


class RemoteAssignment(WireModel):
    parameter_name: str
    value: int | str


class TrialAssignments(WireModel):
    """A suggested (or baseline) set of parameter values."""

    meta: TrialMeta = Field(default_factory=TrialMeta, exclude=True)
    labels: dict[str, str] = Field(default_factory=dict)
    assignments: list[RemoteAssignment] = Field(default_factory=list)


class RemoteValue(WireModel):
    metric_name: str
    value: float
    error: float = 0.0


class TrialValues(WireModel):
    """Observed metric values (or the failure) reported for a trial."""

    failed: bool = False
    failure_reason: str = ""
    failure_message: str = ""
    values: list[RemoteValue] = Field(default_factory=list)


class TrialItem(TrialAssignments):
    """A trial as returned by the trial listing."""

    number: int = -1
    status: TrialState = TrialState.ACTIVE
    values: list[RemoteValue] = Field(default_factory=list)


class TrialList(WireModel):
    trials: list[TrialItem] = Field(default_factory=list)


def split_trial_name(name: str) -> tuple[str, int]:
    """Split ``experimentName-trialNumber``; the number is -1 if absent."""
    experiment, sep, number = name.rpartition("-")
    if sep and number.isdigit():
        return experiment, int(number)
    return name, -1
