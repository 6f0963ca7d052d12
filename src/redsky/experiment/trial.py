"""Trial construction from an experiment's trial template."""

from __future__ import annotations

from redsky.models.experiment import Experiment, Trial
from redsky.models.meta import LABEL_EXPERIMENT, ObjectReference


def populate_trial_from_template(experiment: Experiment, trial: Trial) -> None:
    """Fill in a trial from the experiment's trial template.

    Template labels and annotations are merged under any already present on
    the trial. The trial is named by prefix (``<experiment>-``) unless it
    already has a name.
    """
    template = experiment.spec.trial_template

    meta = trial.metadata
    for key, value in template.metadata.labels.items():
        meta.labels.setdefault(key, value)
    for key, value in template.metadata.annotations.items():
        meta.annotations.setdefault(key, value)
    meta.labels[LABEL_EXPERIMENT] = experiment.metadata.name

    if not meta.name and not meta.generate_name:
        meta.generate_name = f"{experiment.metadata.name}-"
    if not meta.namespace:
        meta.namespace = template.metadata.namespace or experiment.metadata.namespace

    assignments = trial.spec.assignments
    values = trial.spec.values
    trial.spec = template.spec.model_copy(deep=True)
    trial.spec.assignments = assignments
    trial.spec.values = values
    if trial.spec.experiment_ref is None:
        trial.spec.experiment_ref = ObjectReference(
            api_version=experiment.api_version,
            kind=experiment.kind,
            name=experiment.metadata.name,
            namespace=experiment.metadata.namespace,
        )
