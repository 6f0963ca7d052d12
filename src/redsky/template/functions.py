"""Functions available to every template.

Registered as Jinja2 globals by the template engine, so a metric query can
say ``{{ duration(start_time, completion_time) }}`` or
``{{ resource_requests(target, "cpu=0.017,memory=0.000000000002") }}``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from redsky.quantity import Quantity, Scale


def duration(start: datetime | None, end: datetime | None) -> float:
    """Seconds elapsed between two timestamps, never negative."""
    if start is None or end is None:
        return 0.0
    return max((end - start).total_seconds(), 0.0)


def percent(value: int | float, pct: int | float) -> int:
    """Integer percentage of a value (truncated)."""
    return int(float(value) * float(pct) / 100)


def _parse_weights(weights: str) -> dict[str, float]:
    result: dict[str, float] = {}
    for part in weights.split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, raw = part.partition("=")
        if not sep:
            raise ValueError(f"invalid resource weight {part!r}, expected name=weight")
        result[name.strip()] = float(raw)
    return result


def _items(target: Any) -> list[Mapping[str, Any]]:
    if target is None:
        return []
    if hasattr(target, "model_dump"):
        target = target.model_dump(mode="json", by_alias=True)
    if isinstance(target, Mapping):
        if "items" in target:
            return list(target.get("items") or [])
        return [target]
    return list(target)


def resource_requests(target: Any, weights: str) -> float:
    """Weighted sum of container resource requests across a pod list.

    CPU requests are counted in millicores, every other resource in its
    base unit (bytes for memory).
    """
    parsed = _parse_weights(weights)
    total = 0.0
    for pod in _items(target):
        containers = (pod.get("spec") or {}).get("containers") or []
        for container in containers:
            requests = (container.get("resources") or {}).get("requests") or {}
            for name, weight in parsed.items():
                if name not in requests:
                    continue
                q = Quantity.parse(requests[name])
                amount = q.scaled_value(Scale.MILLI) if name == "cpu" else q.value()
                total += weight * amount
    return total


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "duration": duration,
    "percent": percent,
    "resource_requests": resource_requests,
}
