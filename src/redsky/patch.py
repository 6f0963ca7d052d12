"""Build the patch list for a trial.

Rendering happens here; applying the patches to manifests is left to an
external tool that satisfies ``PatchApplier``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

from redsky.models.experiment import PatchTemplate, PatchType, Trial
from redsky.models.meta import ObjectReference
from redsky.template.engine import TemplateEngine


@dataclass(frozen=True)
class PatchTarget:
    """Group/version/kind/name selector for the patched object."""

    group: str = ""
    version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    @classmethod
    def from_reference(cls, ref: ObjectReference) -> PatchTarget:
        group, version = ref.group_version()
        return cls(group=group, version=version, kind=ref.kind, name=ref.name, namespace=ref.namespace)


@dataclass(frozen=True)
class PatchOperation:
    """A rendered JSON patch and the object it targets."""

    patch: str
    target: PatchTarget
    type: PatchType = PatchType.STRATEGIC

    def to_dict(self) -> dict[str, Any]:
        target = {k: v for k, v in vars(self.target).items() if v}
        return {"target": target, "patch": self.patch}


class PatchApplier(Protocol):
    """Applies a patch list to a set of manifests."""

    def apply(
        self, resources: list[dict[str, Any]], patches: list[PatchOperation]
    ) -> list[dict[str, Any]]: ...


def create_patches(
    patch_templates: list[PatchTemplate], trial: Trial, engine: TemplateEngine | None = None
) -> list[PatchOperation]:
    """Render every patch template for the trial.

    Strategic merge and merge patches are completed with the target's
    ``apiVersion``, ``kind`` and ``metadata`` so they can be applied as
    standalone documents.

    Raises:
        TemplateRenderError: If a patch fails to render.
    """
    engine = engine or TemplateEngine()
    result = []
    for template in patch_templates:
        ref = template.target_ref or ObjectReference()
        rendered = engine.render_patch(template, trial)
        if template.type != PatchType.JSON:
            data = json.loads(rendered) or {}
            metadata = {"name": ref.name}
            if ref.namespace:
                metadata["namespace"] = ref.namespace
            metadata.update(data.pop("metadata", None) or {})
            data = {"apiVersion": ref.api_version, "kind": ref.kind, "metadata": metadata, **data}
            rendered = json.dumps(data)
        result.append(
            PatchOperation(patch=rendered, target=PatchTarget.from_reference(ref), type=template.type)
        )
    return result
