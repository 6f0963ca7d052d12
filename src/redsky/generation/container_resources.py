"""Container cpu/memory parameters discovered from workload manifests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import yaml

from redsky.errors import GenerationError
from redsky.models.application import ContainerResources
from redsky.models.experiment import Parameter, PatchTemplate, PatchType
from redsky.models.meta import ObjectReference, parse_label_selector
from redsky.quantity import Format, Quantity, Scale, scale_to_int, suffix_for

logger = logging.getLogger(__name__)

WORKLOAD_KINDS = ("Deployment", "StatefulSet", "DaemonSet", "ReplicaSet", "Job")

# (scale, default format, default min, default max) per resource
_RESOURCE_SCALES: dict[str, tuple[Scale, Format, int, int]] = {
    "cpu": (Scale.MILLI, Format.DECIMAL_SI, 100, 4000),
    "memory": (Scale.MEGA, Format.BINARY_SI, 128, 4096),
}


@dataclass
class _Target:
    workload: dict[str, Any]
    container: dict[str, Any]


def _workloads(resources: list[dict[str, Any]], spec: ContainerResources) -> list[dict[str, Any]]:
    try:
        selector = parse_label_selector(spec.label_selector)
    except ValueError as exc:
        raise GenerationError(str(exc)) from exc

    result = []
    for doc in resources:
        if doc.get("kind") not in WORKLOAD_KINDS:
            continue
        labels = (doc.get("metadata") or {}).get("labels") or {}
        if selector is not None and not selector.matches(labels):
            continue
        result.append(doc)
    return result


def _containers(workload: dict[str, Any]) -> list[dict[str, Any]]:
    pod = ((workload.get("spec") or {}).get("template") or {}).get("spec") or {}
    return [c for c in pod.get("containers") or [] if c.get("name")]


def _parameter(
    name: str, resource: str, workload_name: str, container: dict[str, Any]
) -> tuple[Parameter, str]:
    """Build a parameter and return it with the unit suffix for its values."""
    scale, fmt, default_min, default_max = _RESOURCE_SCALES[resource]
    resources = container.get("resources") or {}
    request = (resources.get("requests") or {}).get(resource) or (
        resources.get("limits") or {}
    ).get(resource)

    if request is None:
        return Parameter(name=name, min=default_min, max=default_max), suffix_for(scale, fmt)

    try:
        q = Quantity.parse(request)
    except ValueError as exc:
        raise GenerationError(
            f"workload {workload_name!r} container {container.get('name')!r} {resource}: {exc}"
        ) from exc
    if q.format == Format.BINARY_SI:
        fmt = Format.BINARY_SI
    elif resource == "memory":
        fmt = Format.DECIMAL_SI
    baseline = scale_to_int(q, scale)
    return (
        Parameter(name=name, min=max(baseline // 2, 1), max=max(baseline * 2, 1), baseline=baseline),
        suffix_for(scale, fmt),
    )


def container_resource_parameters(
    resources: list[dict[str, Any]], spec: ContainerResources | None
) -> tuple[list[Parameter], list[PatchTemplate]]:
    """Generate parameters and one strategic merge patch per matching workload.

    Parameters are named after the resource alone when only one container
    matches, otherwise ``<workload>_<container>_<resource>``.
    """
    if spec is None:
        return [], []

    targets = [
        _Target(workload=w, container=c)
        for w in _workloads(resources, spec)
        for c in _containers(w)
    ]
    names = [r for r in spec.resources if r in _RESOURCE_SCALES]
    for r in spec.resources:
        if r not in _RESOURCE_SCALES:
            logger.warning("Ignoring unsupported container resource %r", r)

    parameters: list[Parameter] = []
    patches: dict[int, tuple[dict[str, Any], list[dict[str, Any]]]] = {}
    for target in targets:
        workload_name = (target.workload.get("metadata") or {}).get("name", "")
        container_name = target.container["name"]
        limits: dict[str, str] = {}
        requests: dict[str, str] = {}
        for resource in names:
            if len(targets) == 1:
                name = resource
            else:
                name = f"{workload_name}_{container_name}_{resource}"
            parameter, suffix = _parameter(name, resource, workload_name, target.container)
            parameters.append(parameter)
            value = '{{ values["%s"] }}%s' % (name, suffix)
            limits[resource] = value
            requests[resource] = value

        _, containers = patches.setdefault(id(target.workload), (target.workload, []))
        containers.append(
            {"name": container_name, "resources": {"limits": limits, "requests": requests}}
        )

    patch_templates = []
    for workload, containers in patches.values():
        meta = workload.get("metadata") or {}
        patch = {"spec": {"template": {"spec": {"containers": containers}}}}
        patch_templates.append(
            PatchTemplate(
                type=PatchType.STRATEGIC,
                patch=yaml.safe_dump(patch, sort_keys=False),
                target_ref=ObjectReference(
                    api_version=workload.get("apiVersion", ""),
                    kind=workload["kind"],
                    name=meta.get("name", ""),
                    namespace=meta.get("namespace", ""),
                ),
            )
        )
    return parameters, patch_templates
