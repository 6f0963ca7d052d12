"""A generic select/map/transform filter over a manifest stream.

Selectors pick the candidate manifests and map each one onto zero or more
typed facts; the transformer then turns the collected facts back into
manifests. The transformer also sees the full input so it can pass
unselected manifests through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ResourceMeta:
    """The identifying fields of a manifest."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    @classmethod
    def of(cls, node: dict[str, Any]) -> ResourceMeta:
        meta = node.get("metadata") or {}
        return cls(
            api_version=node.get("apiVersion", ""),
            kind=node.get("kind", ""),
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
        )


class Selector(Protocol):
    def select(self, nodes: list[dict[str, Any]]) -> list[dict[str, Any]]: ...

    def map(self, node: dict[str, Any], meta: ResourceMeta) -> list[Any]: ...


class Transformer(Protocol):
    def transform(
        self, nodes: list[dict[str, Any]], selected: list[Any]
    ) -> list[dict[str, Any]]: ...


@dataclass
class Scanner:
    """Runs every selector, then hands the mapped facts to the transformer."""

    transformer: Transformer
    selectors: list[Selector] = field(default_factory=list)

    def filter(self, nodes: list[dict[str, Any]]) -> list[dict[str, Any]]:
        selected: list[Any] = []
        for selector in self.selectors:
            for node in selector.select(nodes):
                selected.extend(selector.map(node, ResourceMeta.of(node)))
        return self.transformer.transform(nodes, selected)
