"""Translation between cluster manifests and the remote service wire model.

This is the only module where both shapes meet. Synchronization state lives
in the object annotations (see ``SyncCursors``) and the sync finalizer.
"""

from __future__ import annotations

import logging

from redsky.models import remote
from redsky.models.experiment import (
    Assignment,
    ConditionStatus,
    Experiment,
    Optimization,
    Trial,
    TrialConditionType,
)
from redsky.models.meta import ANNOTATION_NEXT_TRIAL_URL, ANNOTATION_REPORT_TRIAL_URL
from redsky.quantity import Quantity

logger = logging.getLogger(__name__)

FINALIZER = "serverFinalizer.redskyops.dev"

_INT32_MAX = 2**31 - 1
_INT32_MIN = -(2**31)


def _add_finalizer(finalizers: list[str]) -> None:
    if FINALIZER not in finalizers:
        finalizers.append(FINALIZER)


def from_cluster(
    experiment: Experiment,
) -> tuple[str, remote.RemoteExperiment, remote.TrialAssignments | None]:
    """Build the remote experiment (and optional baseline) for a cluster experiment.

    Returns:
        The experiment name, the remote experiment and the baseline
        assignments, which are None unless some parameter has a baseline.

    Raises:
        ValueError: If a sum constraint weight or bound is not a quantity.
    """
    cursors = experiment.cursors
    out = remote.RemoteExperiment(
        meta=remote.ExperimentMeta(
            last_modified=experiment.metadata.creation_timestamp,
            self_url=cursors.self_url,
            next_trial_url=cursors.next_trial_url,
        ),
        optimization=[
            remote.Optimization(name=o.name, value=o.value) for o in experiment.spec.optimization
        ],
    )

    baseline = remote.TrialAssignments(labels={"baseline": "true"})
    for p in experiment.spec.parameters:
        if p.is_categorical:
            out.parameters.append(
                remote.RemoteParameter(
                    type=remote.ParameterType.CATEGORICAL, name=p.name, values=list(p.values)
                )
            )
        else:
            out.parameters.append(
                remote.RemoteParameter(
                    type=remote.ParameterType.INTEGER,
                    name=p.name,
                    bounds=remote.Bounds(min=str(p.min), max=str(p.max)),
                )
            )

        if p.baseline is None:
            continue
        if p.is_categorical:
            value: int | str = str(p.baseline)
        else:
            value = int(p.baseline)
        baseline.assignments.append(remote.RemoteAssignment(parameter_name=p.name, value=value))

    for c in experiment.spec.constraints:
        if c.order is not None:
            out.constraints.append(
                remote.RemoteConstraint(
                    name=c.name,
                    constraint_type=remote.ConstraintType.ORDER,
                    lower_parameter=c.order.lower_parameter,
                    upper_parameter=c.order.upper_parameter,
                )
            )
        elif c.sum is not None:
            out.constraints.append(
                remote.RemoteConstraint(
                    name=c.name,
                    constraint_type=remote.ConstraintType.SUM,
                    is_upper_bound=c.sum.is_upper_bound,
                    bound=Quantity.parse(c.sum.bound).as_float(),
                    parameters=[
                        remote.SumConstraintParameter(
                            name=sp.name, weight=Quantity.parse(sp.weight).as_float()
                        )
                        for sp in c.sum.parameters
                    ],
                )
            )

    for m in experiment.spec.metrics:
        out.metrics.append(remote.RemoteMetric(name=m.name, minimize=m.minimize))

    if not baseline.assignments:
        return experiment.metadata.name, out, None
    return experiment.metadata.name, out, baseline


def to_cluster(experiment: Experiment, remote_experiment: remote.RemoteExperiment) -> None:
    """Record the remote experiment's cursors and hints on the cluster experiment."""
    cursors = experiment.cursors
    cursors.self_url = remote_experiment.meta.self_url
    cursors.next_trial_url = remote_experiment.meta.next_trial_url
    cursors.write(experiment.metadata.annotations)

    experiment.spec.optimization = [
        Optimization(name=o.name, value=o.value) for o in remote_experiment.optimization
    ]
    _add_finalizer(experiment.metadata.finalizers)


def _clamp_int32(v: int) -> int:
    return max(_INT32_MIN, min(_INT32_MAX, v))


def to_cluster_trial(trial: Trial, suggestion: remote.TrialAssignments) -> None:
    """Fill in a cluster trial from suggested assignments.

    Integer values outside the signed 32-bit range saturate at its limits.
    """
    self_url = suggestion.meta.self_url
    meta = trial.metadata
    if not meta.name and meta.generate_name and self_url:
        ident = self_url.rstrip("/").rsplit("/", 1)[-1]
        if ident.isdigit():
            meta.name = f"{meta.generate_name}{int(ident):03d}"
        else:
            meta.name = f"{meta.generate_name}{ident}"

    meta.annotations[ANNOTATION_REPORT_TRIAL_URL] = self_url
    _add_finalizer(meta.finalizers)
    trial.status.phase = "Created"

    parts = []
    for a in suggestion.assignments:
        value = a.value
        if isinstance(value, int):
            clamped = _clamp_int32(value)
            if clamped != value:
                logger.warning("Assignment %s=%d clamped to %d", a.parameter_name, value, clamped)
            value = clamped
        trial.spec.assignments.append(Assignment(name=a.parameter_name, value=value))
        parts.append(f"{a.parameter_name}={value}")
    trial.status.assignments = ", ".join(parts)


def from_cluster_trial(trial: Trial) -> remote.TrialValues:
    """Build the values (or failure) to report for a finished trial."""
    for c in trial.status.conditions:
        if c.type == TrialConditionType.FAILED and c.status == ConditionStatus.TRUE:
            return remote.TrialValues(
                failed=True, failure_reason=c.reason, failure_message=c.message
            )

    out = remote.TrialValues()
    for v in trial.spec.values:
        out.values.append(
            remote.RemoteValue(
                metric_name=v.name,
                value=float(v.value),
                error=float(v.error) if v.error else 0.0,
            )
        )
    return out


def stop_experiment(experiment: Experiment, err: Exception | None) -> bool:
    """Handle a remote "experiment stopped" error.

    Clears the next-trial URL and returns True for that error only; any
    other error leaves the experiment untouched.
    """
    if isinstance(err, remote.RemoteError) and err.type == remote.ErrorType.EXPERIMENT_STOPPED:
        experiment.metadata.annotations.pop(ANNOTATION_NEXT_TRIAL_URL, None)
        return True
    return False
