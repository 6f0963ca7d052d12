"""Experiment lifecycle: phases, conditions and trial population."""

from redsky.experiment.phase import (
    PHASES,
    ExperimentSummary,
    apply_condition,
    summarize,
    summarize_experiments,
)
from redsky.experiment.trial import populate_trial_from_template

__all__ = [
    "PHASES",
    "ExperimentSummary",
    "apply_condition",
    "populate_trial_from_template",
    "summarize",
    "summarize_experiments",
]
