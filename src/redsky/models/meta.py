"""Cluster object metadata shared by every manifest model.

Manifests use camelCase keys; the models expose snake_case fields and
accept either spelling on input.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field
from pydantic.alias_generators import to_camel

# Well-known annotation and label keys
ANNOTATION_EXPERIMENT_URL = "redskyops.dev/experiment-url"
ANNOTATION_NEXT_TRIAL_URL = "redskyops.dev/next-trial-url"
ANNOTATION_REPORT_TRIAL_URL = "redskyops.dev/report-trial-url"
ANNOTATION_LAST_SCANNED = "redskyops.dev/last-scanned"
LABEL_EXPERIMENT = "redskyops.dev/experiment"
LABEL_APPLICATION = "redskyops.dev/application"
LABEL_SCENARIO = "redskyops.dev/scenario"
LABEL_OBJECTIVE = "redskyops.dev/objective"


def _as_text(value: Any) -> Any:
    """Accept YAML numbers where the manifest contract is a string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


# A quantity or decimal number kept in its textual form
QuantityText = Annotated[str, BeforeValidator(_as_text)]


class KubeModel(BaseModel):
    """Base class for manifest models (camelCase on the wire)."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class ObjectMeta(KubeModel):
    """Standard object metadata."""

    name: str = ""
    generate_name: str = ""
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    finalizers: list[str] = Field(default_factory=list)
    creation_timestamp: datetime | None = None
    deletion_timestamp: datetime | None = None


class ObjectReference(KubeModel):
    """Reference to a single object by group/version/kind and name."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    def group_version(self) -> tuple[str, str]:
        """Split ``api_version`` into (group, version); the core group is ''."""
        group, _, version = self.api_version.rpartition("/")
        return group, version


class LabelSelectorRequirement(KubeModel):
    key: str
    operator: str
    values: list[str] = Field(default_factory=list)


class LabelSelector(KubeModel):
    """Structured label selector (``matchLabels`` / ``matchExpressions``)."""

    match_labels: dict[str, str] = Field(default_factory=dict)
    match_expressions: list[LabelSelectorRequirement] = Field(default_factory=list)

    def matches(self, labels: dict[str, str]) -> bool:
        """Return True if the supplied label set satisfies the selector."""
        for k, v in self.match_labels.items():
            if labels.get(k) != v:
                return False
        for req in self.match_expressions:
            if req.operator == "In" and labels.get(req.key) not in req.values:
                return False
            if req.operator == "NotIn" and req.key in labels and labels[req.key] in req.values:
                return False
            if req.operator == "Exists" and req.key not in labels:
                return False
            if req.operator == "DoesNotExist" and req.key in labels:
                return False
        return True


_LABEL_KEY_RE = re.compile(
    r"^([a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*/)?"
    r"[A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?$"
)
_LABEL_VALUE_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?)?$")
_SET_RE = re.compile(r"^(\S+)\s+(in|notin)\s+\((.*)\)$")


def _split_requirements(text: str) -> list[str]:
    """Split on commas that are not inside a parenthesized value set."""
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"unbalanced parenthesis in selector {text!r}")
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += ch
    if depth != 0:
        raise ValueError(f"unbalanced parenthesis in selector {text!r}")
    parts.append(current)
    return [p.strip() for p in parts]


def _check_key(key: str, text: str) -> str:
    if not _LABEL_KEY_RE.match(key):
        raise ValueError(f"invalid label key {key!r} in selector {text!r}")
    return key


def _check_value(value: str, text: str) -> str:
    if not _LABEL_VALUE_RE.match(value):
        raise ValueError(f"invalid label value {value!r} in selector {text!r}")
    return value


def parse_label_selector(text: str) -> LabelSelector | None:
    """Parse a textual label selector such as ``app=web,tier in (a,b)``.

    Returns None for an empty selector.

    Raises:
        ValueError: If the selector is malformed.
    """
    if not text.strip():
        return None

    selector = LabelSelector()
    for part in _split_requirements(text):
        if not part:
            raise ValueError(f"empty requirement in selector {text!r}")

        set_match = _SET_RE.match(part)
        if set_match:
            key, op, raw_values = set_match.groups()
            values = [_check_value(v.strip(), text) for v in raw_values.split(",") if v.strip()]
            selector.match_expressions.append(
                LabelSelectorRequirement(
                    key=_check_key(key, text),
                    operator="In" if op == "in" else "NotIn",
                    values=values,
                )
            )
        elif "!=" in part:
            key, _, value = part.partition("!=")
            selector.match_expressions.append(
                LabelSelectorRequirement(
                    key=_check_key(key.strip(), text),
                    operator="NotIn",
                    values=[_check_value(value.strip(), text)],
                )
            )
        elif "=" in part:
            key, _, value = part.partition("==" if "==" in part else "=")
            selector.match_labels[_check_key(key.strip(), text)] = _check_value(value.strip(), text)
        elif part.startswith("!"):
            selector.match_expressions.append(
                LabelSelectorRequirement(key=_check_key(part[1:].strip(), text), operator="DoesNotExist")
            )
        else:
            selector.match_expressions.append(
                LabelSelectorRequirement(key=_check_key(part, text), operator="Exists")
            )
    return selector


def to_manifest(model: KubeModel) -> dict[str, Any]:
    """Serialize a manifest model, omitting fields left at their defaults.

    ``apiVersion`` and ``kind`` are always emitted first when the model has them.
    """
    data = model.model_dump(mode="json", by_alias=True, exclude_defaults=True)
    head: dict[str, Any] = {}
    for field_name, key in (("api_version", "apiVersion"), ("kind", "kind")):
        if field_name in type(model).model_fields:
            head[key] = getattr(model, field_name)
    return {**head, **data}
