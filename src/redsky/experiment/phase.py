"""Experiment lifecycle phase computation.

The phase is derived, never stored as the source of truth: it is a pure
function of the experiment's metadata, replica count, conditions and the
number of active and total trials. The signals overlap, so the order of the
checks in ``summarize`` is the precedence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from redsky.errors import RedSkyError
from redsky.models.experiment import (
    ConditionStatus,
    Experiment,
    ExperimentCondition,
    ExperimentConditionType,
    ExperimentStatus,
    Trial,
)
from redsky.models.meta import LABEL_EXPERIMENT

PHASE_EMPTY = "Empty"
PHASE_CREATED = "Created"
PHASE_PAUSED = "Paused"
PHASE_RUNNING = "Running"
PHASE_IDLE = "Idle"
PHASE_COMPLETED = "Completed"
PHASE_FAILED = "Failed"
PHASE_DELETED = "Deleted"

_M = TypeVar("_M", bound=BaseModel)

PHASES = (
    PHASE_EMPTY,
    PHASE_CREATED,
    PHASE_PAUSED,
    PHASE_RUNNING,
    PHASE_IDLE,
    PHASE_COMPLETED,
    PHASE_FAILED,
    PHASE_DELETED,
)


def _condition_true(status: ExperimentStatus, type_: ExperimentConditionType) -> bool:
    return any(c.type == type_ and c.status == ConditionStatus.TRUE for c in status.conditions)


def summarize(experiment: Experiment, active_trials: int, total_trials: int) -> str:
    """Return the single lifecycle phase of an experiment.

    Never raises; missing fields simply fail their check and fall through
    to the next one.
    """
    if experiment.metadata.deletion_timestamp is not None:
        return PHASE_DELETED

    if active_trials > 0:
        return PHASE_RUNNING

    if _condition_true(experiment.status, ExperimentConditionType.COMPLETE):
        return PHASE_COMPLETED

    if _condition_true(experiment.status, ExperimentConditionType.FAILED):
        return PHASE_FAILED

    if experiment.spec.replicas is not None and experiment.spec.replicas == 0:
        return PHASE_PAUSED

    cursors = experiment.cursors
    if total_trials > 0 and not cursors.next_trial_url:
        return PHASE_IDLE

    if cursors.synced:
        return PHASE_CREATED

    return PHASE_EMPTY


def apply_condition(
    status: ExperimentStatus,
    type_: ExperimentConditionType,
    value: ConditionStatus,
    reason: str,
    message: str,
    time: datetime,
) -> None:
    """Insert or update the condition of the given type in place.

    A status change stamps both the probe and transition times. The same
    status with different details only refreshes the probe time. Identical
    input is a no-op.
    """
    for condition in status.conditions:
        if condition.type != type_:
            continue

        if condition.status != value:
            condition.status = value
            condition.reason = reason
            condition.message = message
            condition.last_probe_time = time
            condition.last_transition_time = time
        elif condition.reason != reason or condition.message != message:
            condition.last_probe_time = time
        return

    status.conditions.append(
        ExperimentCondition(
            type=type_,
            status=value,
            reason=reason,
            message=message,
            last_probe_time=time,
            last_transition_time=time,
        )
    )


@dataclass
class ExperimentSummary:
    """Phase and trial counts for one experiment."""

    name: str
    namespace: str
    phase: str
    active_trials: int = 0
    total_trials: int = 0


def _validate(model: type[_M], doc: dict[str, Any]) -> _M:
    try:
        return model.model_validate(doc)
    except ValidationError as exc:
        name = (doc.get("metadata") or {}).get("name", "")
        raise RedSkyError(f"invalid {model.__name__} {name!r}: {exc}") from exc


def summarize_experiments(manifests: list[dict[str, Any]]) -> list[ExperimentSummary]:
    """Compute the phase of every Experiment in a manifest list.

    Trials are matched to experiments by the ``redskyops.dev/experiment``
    label and namespace. A trial counts as active until it finishes.
    """
    experiments: list[Experiment] = []
    active: dict[tuple[str, str], int] = {}
    total: dict[tuple[str, str], int] = {}

    for doc in manifests:
        kind = doc.get("kind")
        if kind == "Experiment":
            experiments.append(_validate(Experiment, doc))
        elif kind == "Trial":
            trial = _validate(Trial, doc)
            owner = trial.metadata.labels.get(LABEL_EXPERIMENT, "")
            if not owner:
                continue
            key = (trial.metadata.namespace, owner)
            total[key] = total.get(key, 0) + 1
            if not trial.is_finished():
                active[key] = active.get(key, 0) + 1

    summaries = []
    for experiment in experiments:
        key = (experiment.metadata.namespace, experiment.metadata.name)
        n_active = active.get(key, 0)
        n_total = total.get(key, 0)
        summaries.append(
            ExperimentSummary(
                name=experiment.metadata.name,
                namespace=experiment.metadata.namespace,
                phase=summarize(experiment, n_active, n_total),
                active_trials=n_active,
                total_trials=n_total,
            )
        )
    return summaries
