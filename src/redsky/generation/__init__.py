"""Experiment generation -- scenario source registry and generator."""

from __future__ import annotations

from collections.abc import Callable

from redsky.generation.base import Source, SourceContext
from redsky.generation.custom import custom_source
from redsky.generation.locust import locust_source

SOURCE_REGISTRY: dict[str, Callable[[SourceContext], Source]] = {
    "locust": locust_source,
    "custom": custom_source,
}


def get_source(kind: str, ctx: SourceContext) -> Source:
    """Look up and build the source for a scenario kind.

    Raises:
        ValueError: If *kind* is not in the registry.
    """
    factory = SOURCE_REGISTRY.get(kind)
    if factory is None:
        available = sorted(SOURCE_REGISTRY.keys())
        raise ValueError(f"Unknown scenario type {kind!r}. Available types: {available}")
    return factory(ctx)


__all__ = ["SOURCE_REGISTRY", "Source", "SourceContext", "get_source"]
