"""Export the patches for a remote trial.

The trial's assignments come from the remote service; the experiment is
found in the supplied manifests or generated from the Application that
produced it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError

from redsky.api.client import ExperimentsAPI
from redsky.application.resources import ResourceReader
from redsky.errors import RedSkyError
from redsky.experiment.trial import populate_trial_from_template
from redsky.generation.generator import ExperimentGenerator
from redsky.models.application import APPLICATION_API_VERSION, Application
from redsky.models.config import ProjectConfig
from redsky.models.experiment import EXPERIMENT_API_VERSION, Experiment, Trial
from redsky.models.remote import TrialAssignments, TrialState, split_trial_name
from redsky.patch import PatchOperation, create_patches
from redsky.server.codec import to_cluster_trial

logger = logging.getLogger(__name__)


@dataclass
class TrialDetails:
    """Where a remote trial came from and what it assigned."""

    assignments: TrialAssignments
    experiment: str
    application: str = ""
    scenario: str = ""
    objective: str = ""


def get_trial_details(api: ExperimentsAPI, trial_name: str) -> TrialDetails:
    """Look up a completed trial by ``experimentName-trialNumber``.

    Raises:
        RedSkyError: If the name is invalid or the trial cannot be found.
        RemoteError: If the remote service rejects a request.
    """
    experiment_name, number = split_trial_name(trial_name)
    if number < 0:
        raise RedSkyError(f"invalid trial name {trial_name!r}")

    experiment = api.get_experiment_by_name(experiment_name)
    if not experiment.meta.trials_url:
        raise RedSkyError("unable to find trials for experiment")

    trials = api.get_all_trials(experiment.meta.trials_url, status=[TrialState.COMPLETED])
    for item in trials.trials:
        if item.number == number:
            return TrialDetails(
                assignments=TrialAssignments(
                    meta=item.meta, labels=item.labels, assignments=item.assignments
                ),
                experiment=experiment_name,
                application=experiment.labels.get("application", ""),
                scenario=experiment.labels.get("scenario", ""),
                objective=experiment.labels.get("objective", ""),
            )
    raise RedSkyError(f"trial {trial_name!r} not found")


def _find(manifests: list[dict[str, Any]], api_version: str, kind: str, name: str) -> dict | None:
    for doc in manifests:
        if doc.get("apiVersion") != api_version or doc.get("kind") != kind:
            continue
        if not name or (doc.get("metadata") or {}).get("name") == name:
            return doc
    return None


def guess_scenario_and_objective(application: Application, experiment_name: str) -> tuple[str, str]:
    """Recover the scenario and objective names from a generated experiment name."""
    app_name = application.metadata.name
    for scenario in application.scenarios:
        for objective in application.objectives:
            parts = [p for p in (app_name, scenario.name, objective.name) if p]
            if "-".join(parts) == experiment_name:
                return scenario.name, objective.name
    return "", ""


def find_experiment(
    manifests: list[dict[str, Any]],
    details: TrialDetails,
    working_dir: Path | None = None,
    config: ProjectConfig | None = None,
    default_reader: IO[str] | None = None,
) -> Experiment:
    """Return the trial's experiment, generating it from the Application if needed.

    Raises:
        RedSkyError: If neither the experiment nor its application is present,
            or the one found is malformed.
    """
    doc = _find(manifests, EXPERIMENT_API_VERSION, "Experiment", details.experiment)
    if doc is not None:
        try:
            return Experiment.model_validate(doc)
        except ValidationError as exc:
            raise RedSkyError(f"invalid experiment {details.experiment!r}: {exc}") from exc

    doc = _find(manifests, APPLICATION_API_VERSION, "Application", details.application)
    if doc is None:
        raise RedSkyError(f"unable to find an application {details.application!r}")
    try:
        application = Application.model_validate({k: v for k, v in doc.items() if k != "status"})
    except ValidationError as exc:
        raise RedSkyError(f"invalid application {details.application!r}: {exc}") from exc
    application.apply_defaults()

    scenario, objective = details.scenario, details.objective
    if not scenario and not objective:
        scenario, objective = guess_scenario_and_objective(application, details.experiment)

    config = config or ProjectConfig()
    reader = ResourceReader(
        default_reader=default_reader, depth=config.resource_depth, working_dir=working_dir
    )
    generator = ExperimentGenerator(
        application=application,
        experiment_name=details.experiment,
        scenario=scenario,
        objective=objective,
        resources=reader.read(application.resources),
        working_dir=working_dir,
        config=config,
    )
    experiment, _ = generator.build()
    logger.info("Generated experiment %s from application %s", details.experiment, details.application)
    return experiment


def export_patches(experiment: Experiment, details: TrialDetails) -> list[PatchOperation]:
    """Render the experiment's patches with the trial's assignments."""
    trial = Trial()
    populate_trial_from_template(experiment, trial)
    to_cluster_trial(trial, details.assignments)
    return create_patches(experiment.spec.patches, trial)
