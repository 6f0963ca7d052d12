"""redsky label -- label remote experiments and trials.

Arguments are resource names (``experiment/NAME``, ``trial/NAME`` or a
bare name after an ``experiment`` / ``trial`` type argument), ``KEY=VALUE``
labels to set and ``KEY-`` labels to remove.
"""

from __future__ import annotations

from dataclasses import dataclass

import typer

from redsky.api.client import ExperimentsAPI
from redsky.errors import RedSkyError
from redsky.models.config import load_project_config
from redsky.models.remote import RemoteError, TrialState, split_trial_name

_TYPES = {
    "experiment": "experiment",
    "experiments": "experiment",
    "exp": "experiment",
    "trial": "trial",
    "trials": "trial",
    "tr": "trial",
}


@dataclass(frozen=True)
class LabelTarget:
    type: str
    name: str


def parse_label_args(args: list[str]) -> tuple[list[LabelTarget], dict[str, str]]:
    """Split command arguments into targets and labels.

    Raises:
        RedSkyError: If a name has no resource type.
    """
    labels: dict[str, str] = {}
    targets: list[LabelTarget] = []
    current = ""
    for arg in args:
        if "=" in arg:
            key, _, value = arg.partition("=")
            labels[key] = value
        elif arg.endswith("-") and arg.strip("-"):
            labels[arg[:-1]] = ""
        elif "/" in arg:
            kind, _, name = arg.partition("/")
            if kind not in _TYPES:
                raise RedSkyError(f"cannot label {kind}")
            targets.append(LabelTarget(_TYPES[kind], name))
        elif arg in _TYPES:
            current = _TYPES[arg]
        elif current:
            targets.append(LabelTarget(current, arg))
        else:
            raise RedSkyError(f"missing resource type for {arg!r}")
    return targets, labels


def label_targets(api: ExperimentsAPI, targets: list[LabelTarget], labels: dict[str, str]) -> list[str]:
    """Apply labels and return the names that were labeled.

    Only completed trials can be labeled.
    """
    labeled: list[str] = []
    trials: dict[str, list[int]] = {}
    for t in targets:
        if t.type == "experiment":
            experiment = api.get_experiment_by_name(t.name)
            api.label_experiment(experiment.meta.labels_url, labels)
            labeled.append(f"experiment/{t.name}")
        else:
            experiment_name, number = split_trial_name(t.name)
            if number < 0:
                raise RedSkyError(f"invalid trial name {t.name!r}")
            trials.setdefault(experiment_name, []).append(number)

    for experiment_name, numbers in trials.items():
        experiment = api.get_experiment_by_name(experiment_name)
        trial_list = api.get_all_trials(experiment.meta.trials_url, status=[TrialState.COMPLETED])
        count = 0
        for item in trial_list.trials:
            if item.number in numbers:
                api.label_trial(item.meta.labels_url, labels)
                labeled.append(f"trial/{experiment_name}-{item.number:03d}")
                count += 1
        if count != len(numbers):
            raise RedSkyError('unable to label some trials (only "completed" trials can be labeled)')
    return labeled


def label(
    args: list[str] = typer.Argument(..., help="TYPE NAME... KEY=VALUE... KEY-..."),
) -> None:
    """Label experiments or trials on the remote server."""
    try:
        targets, labels = parse_label_args(args)
        if not labels:
            raise RedSkyError("at least one label is required")
        config = load_project_config()
        with ExperimentsAPI(config.server_url, token=config.token) as api:
            for name in label_targets(api, targets, labels):
                typer.echo(f"{name} labeled")
    except (RedSkyError, RemoteError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
