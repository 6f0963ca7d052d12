"""Generate (or refresh) an Application from a resource stream.

Any Application documents already present in the stream are folded
together, the generator's own settings are applied on top, and the result
is cleaned so running the generator on its own output is stable.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

from redsky.application.resources import DEFAULT_DEPTH, ClusterReader, ResourceReader
from redsky.models.application import (
    APPLICATION_API_VERSION,
    Application,
    Objective,
    ResourceLocator,
)
from redsky.models.meta import ANNOTATION_LAST_SCANNED, to_manifest
from redsky.scan.scanner import ResourceMeta, Scanner

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def merge_applications(src: Application, dst: Application) -> None:
    """Fold ``src`` into ``dst``.

    Scalars are overwritten when set on ``src``, lists are concatenated and
    label/annotation maps are unioned with ``src`` winning.
    """
    if src.metadata.name:
        dst.metadata.name = src.metadata.name
    if src.metadata.namespace:
        dst.metadata.namespace = src.metadata.namespace
    dst.metadata.labels = {**dst.metadata.labels, **src.metadata.labels}
    dst.metadata.annotations = {**dst.metadata.annotations, **src.metadata.annotations}

    for attr in ("parameters", "ingress", "cloud_provider"):
        value = getattr(src, attr)
        if value is not None:
            setattr(dst, attr, value.model_copy(deep=True))

    dst.resources.extend(r.model_copy(deep=True) for r in src.resources)
    dst.scenarios.extend(s.model_copy(deep=True) for s in src.scenarios)
    dst.objectives.extend(o.model_copy(deep=True) for o in src.objectives)


def _is_fd_path(location: str) -> bool:
    return os.path.dirname(location) == "/dev/fd"


class ApplicationGenerator:
    """Scans resources and produces a single Application manifest.

    Args:
        name: Overrides the application name when set.
        resources: Locators to read and to record on the application.
        objectives: Objective names to add (as empty objectives).
        default_reader: Stream used for ``-`` locators.
        depth: Maximum nesting of ``Resource`` documents.
        clock: Source of the last-scanned timestamp.
    """

    def __init__(
        self,
        name: str = "",
        resources: list[ResourceLocator] | None = None,
        objectives: list[str] | None = None,
        default_reader: IO[str] | None = None,
        depth: int = DEFAULT_DEPTH,
        working_dir: Path | None = None,
        cluster_reader: ClusterReader | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.name = name
        self.resources = resources or []
        self.objectives = objectives or []
        self.clock = clock
        self.reader = ResourceReader(
            default_reader=default_reader,
            depth=depth,
            working_dir=working_dir,
            cluster_reader=cluster_reader,
        )

    def execute(self) -> list[dict[str, Any]]:
        """Read the resources and return the generated manifests.

        Raises:
            ResourceReadError: If any input cannot be read.
        """
        nodes = self.reader.read(self.resources)
        output = Scanner(transformer=self, selectors=[self]).filter(nodes)
        for doc in output:
            doc.pop("status", None)
        return output

    def select(self, nodes: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return nodes

    def map(self, node: dict[str, Any], meta: ResourceMeta) -> list[Any]:
        if meta.kind == "Application" and meta.api_version == APPLICATION_API_VERSION:
            data = {k: v for k, v in node.items() if k != "status"}
            return [Application.model_validate(data)]
        return []

    def transform(self, nodes: list[dict[str, Any]], selected: list[Any]) -> list[dict[str, Any]]:
        app = Application()
        for fact in selected:
            if isinstance(fact, Application):
                merge_applications(fact, app)
        self.apply(app)
        self.clean(app)
        logger.debug("Generated application %r from %d resources", app.metadata.name, len(nodes))
        return [to_manifest(app)]

    def apply(self, app: Application) -> None:
        """Apply the generator settings to the application."""
        if self.name:
            app.metadata.name = self.name
        app.metadata.annotations[ANNOTATION_LAST_SCANNED] = self.clock().astimezone(
            timezone.utc
        ).strftime("%Y-%m-%dT%H:%M:%SZ")

        for locator in self.resources:
            if locator not in app.resources:
                app.resources.append(locator.model_copy(deep=True))

        existing = {o.name for o in app.objectives}
        for name in self.objectives:
            if name not in existing:
                app.objectives.append(Objective(name=name))
                existing.add(name)

    def clean(self, app: Application) -> None:
        """Drop standard input and file descriptor paths from the locators."""
        resources = []
        for locator in app.resources:
            if locator.resource is not None:
                kept = [
                    r for r in locator.resource.resources if r != "-" and not _is_fd_path(r)
                ]
                if not kept:
                    continue
                locator.resource.resources = kept
            resources.append(locator)
        app.resources = resources
