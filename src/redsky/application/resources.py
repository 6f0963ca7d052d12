"""Expansion of resource locators into manifests.

A locator names files, directories, URLs, standard input (``-``) or a
cluster query. Files may themselves contain ``Resource`` documents that
point at more locations; those are expanded recursively up to a fixed
depth.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

import httpx
import yaml

from redsky.errors import ResourceReadError
from redsky.models.application import KubernetesSource, ResourceLocator

logger = logging.getLogger(__name__)

RESOURCE_API_VERSION = "konjure.stormforge.io/v1beta1"
DEFAULT_DEPTH = 100

ClusterReader = Callable[[KubernetesSource], list[dict[str, Any]]]


def _is_nested_resource(doc: dict[str, Any]) -> bool:
    return doc.get("apiVersion") == RESOURCE_API_VERSION and doc.get("kind") == "Resource"


class ResourceReader:
    """Reads the manifests named by resource locators.

    Args:
        default_reader: Stream used for ``-``.
        depth: Maximum nesting of ``Resource`` documents.
        working_dir: Base for relative paths.
        cluster_reader: Callable answering ``kubernetes`` locators.
        client: httpx client used for URLs.
    """

    def __init__(
        self,
        default_reader: IO[str] | None = None,
        depth: int = DEFAULT_DEPTH,
        working_dir: Path | None = None,
        cluster_reader: ClusterReader | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.default_reader = default_reader
        self.depth = depth
        self.working_dir = working_dir or Path.cwd()
        self.cluster_reader = cluster_reader
        self.client = client

    def read(self, locators: list[ResourceLocator]) -> list[dict[str, Any]]:
        """Read every locator in order and return the expanded manifests.

        Raises:
            ResourceReadError: If any input cannot be read or parsed.
        """
        result: list[dict[str, Any]] = []
        for locator in locators:
            docs: list[dict[str, Any]] = []
            if locator.resource is not None:
                for location in locator.resource.resources:
                    docs.extend(self.read_location(location))
            if locator.kubernetes is not None:
                if self.cluster_reader is None:
                    raise ResourceReadError("no cluster connection available", locator="kubernetes")
                docs.extend(self.cluster_reader(locator.kubernetes))
            result.extend(self._expand(docs, self.depth))
        return result

    def _expand(self, docs: list[dict[str, Any]], depth: int) -> list[dict[str, Any]]:
        result: list[dict[str, Any]] = []
        for doc in docs:
            if not _is_nested_resource(doc):
                result.append(doc)
                continue
            if depth <= 0:
                raise ResourceReadError("maximum resource depth exceeded", locator=RESOURCE_API_VERSION)
            for location in doc.get("resources") or []:
                result.extend(self._expand(self.read_location(location), depth - 1))
        return result

    def read_location(self, location: str) -> list[dict[str, Any]]:
        """Read the documents at a single path, URL or ``-``."""
        if location == "-":
            if self.default_reader is None:
                raise ResourceReadError("no standard input available", locator=location)
            return self._parse(self.default_reader.read(), location)

        if location.startswith(("http://", "https://")):
            logger.debug("Fetching %s", location)
            try:
                if self.client is not None:
                    response = self.client.get(location)
                else:
                    response = httpx.get(location, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ResourceReadError(str(exc), locator=location) from exc
            return self._parse(response.text, location)

        path = Path(location)
        if not path.is_absolute():
            path = self.working_dir / path
        if path.is_dir():
            docs: list[dict[str, Any]] = []
            files = sorted(list(path.glob("*.yaml")) + list(path.glob("*.yml")))
            for f in files:
                docs.extend(self._read_file(f))
            return docs
        return self._read_file(path)

    def _read_file(self, path: Path) -> list[dict[str, Any]]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ResourceReadError(exc.strerror or str(exc), locator=str(path)) from exc
        return self._parse(text, str(path))

    @staticmethod
    def _parse(text: str, location: str) -> list[dict[str, Any]]:
        try:
            docs = list(yaml.safe_load_all(text))
        except yaml.YAMLError as exc:
            raise ResourceReadError(str(exc), locator=location) from exc
        result = []
        for doc in docs:
            if doc is None:
                continue
            if not isinstance(doc, dict):
                raise ResourceReadError("expected a mapping at the document root", locator=location)
            result.append(doc)
        return result
