"""Project configuration model.

Captures redsky.yaml fields with sensible defaults for the remote server,
trial job images and resource expansion limits.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

CONFIG_FILENAME = "redsky.yaml"


class ProjectConfig(BaseModel):
    """Project-level configuration loaded from redsky.yaml."""

    model_config = {"extra": "forbid"}

    server_url: str = "https://api.stormforge.io/v1/experiments/"
    token: str = ""
    trial_image_repository: str = "ghcr.io/thestormforge/optimize-trials"
    trial_image_tag: str = "v0.0.1"
    resource_depth: int = Field(default=100, ge=1)
    default_namespace: str = "default"

    def trial_job_image(self, job: str) -> str:
        """Return the image used for a built-in trial job (e.g. "locust")."""
        return f"{self.trial_image_repository}:{self.trial_image_tag}-{job}"


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for redsky.yaml.

    Returns:
        The directory containing redsky.yaml, or cwd if none is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists():
            return current
        current = current.parent
    return Path.cwd()


def load_project_config(project_root: Path | None = None) -> ProjectConfig:
    """Load ProjectConfig from redsky.yaml, then apply environment overrides.

    ``REDSKY_SERVER_URL`` and ``REDSKY_TOKEN`` take precedence over the file.
    Returns defaults if the file does not exist.
    """
    if project_root is None:
        project_root = find_project_root()
    config_path = project_root / CONFIG_FILENAME

    raw: dict = {}
    if config_path.exists():
        import yaml

        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}

    if os.environ.get("REDSKY_SERVER_URL"):
        raw["server_url"] = os.environ["REDSKY_SERVER_URL"]
    if os.environ.get("REDSKY_TOKEN"):
        raw["token"] = os.environ["REDSKY_TOKEN"]
    return ProjectConfig.model_validate(raw)
