"""Red Sky data models - re-exports the public model classes."""

from redsky.models.application import (
    Application,
    Goal,
    Objective,
    ResourceLocator,
    Scenario,
)
from redsky.models.config import ProjectConfig
from redsky.models.experiment import (
    Experiment,
    Metric,
    Parameter,
    PatchTemplate,
    SyncCursors,
    Trial,
)
from redsky.models.meta import ObjectMeta, to_manifest

__all__ = [
    "Application",
    "Experiment",
    "Goal",
    "Metric",
    "ObjectMeta",
    "Objective",
    "Parameter",
    "PatchTemplate",
    "ProjectConfig",
    "ResourceLocator",
    "Scenario",
    "SyncCursors",
    "Trial",
    "to_manifest",
]
