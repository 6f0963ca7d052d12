"""Application validation: YAML parsing followed by model validation.

Errors from both stages carry source positions and are collected so every
problem in a file is reported at once.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from redsky.loader.yaml_parser import YAMLParseError, parse_yaml_file, parse_yaml_with_lines
from redsky.models.application import APPLICATION_API_VERSION, Application


@dataclass
class ValidationErrorDetail:
    """A single validation error with source position and context.

    Attributes:
        field: Dotted path of the offending key.
        message: Human-readable error description.
        type: Pydantic error type (or a loader-specific one).
        line: 1-indexed line in the source YAML, if known.
        col: 1-indexed column in the source YAML, if known.
        suggestion: "Did you mean" hint for misspelled keys.
        input_value: The rejected input, if available.
    """

    field: str
    message: str
    type: str
    line: int | None = None
    col: int | None = None
    suggestion: str | None = None
    input_value: Any = field(default=None)


def _find_line_for_field(
    field_path: str, line_map: dict[str, tuple[int, int]]
) -> tuple[int | None, int | None]:
    """Position of the field, or of its closest enclosing key."""
    parts = field_path.split(".")
    while parts:
        prefix = ".".join(parts)
        if prefix in line_map:
            return line_map[prefix]
        parts.pop()
    return None, None


def _model_at(loc: tuple[str | int, ...]) -> type[BaseModel] | None:
    """Walk the Application model along an error location."""
    model: type[BaseModel] | None = Application
    for part in loc:
        if model is None:
            return None
        if isinstance(part, int):
            continue
        fields = {f.alias or name: f for name, f in model.model_fields.items()}
        info = fields.get(str(part)) or model.model_fields.get(str(part))
        if info is None:
            return model
        model = _nested_model(info.annotation)
    return model


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    for arg in getattr(annotation, "__args__", ()) or ():
        found = _nested_model(arg)
        if found is not None:
            return found
    return None


def _get_suggestion(loc: tuple[str | int, ...]) -> str | None:
    """Suggest the closest valid key for an unknown one."""
    if not loc:
        return None
    model = _model_at(loc[:-1])
    if model is None:
        return None
    valid = [f.alias or name for name, f in model.model_fields.items()]
    matches = difflib.get_close_matches(str(loc[-1]), valid, n=1, cutoff=0.6)
    if matches:
        return f"Did you mean '{matches[0]}'?"
    return None


def _clean_loc(loc: tuple[str | int, ...]) -> tuple[str | int, ...]:
    # Drop the function-validator markers pydantic inserts for before-validators
    return tuple(p for p in loc if not (isinstance(p, str) and p.startswith("function-")))


def validate_application(
    raw_data: dict[str, Any], line_map: dict[str, tuple[int, int]]
) -> tuple[Application | None, list[ValidationErrorDetail]]:
    """Validate parsed YAML against the Application model.

    Returns:
        (Application, []) on success, or (None, errors) on failure.
    """
    errors: list[ValidationErrorDetail] = []
    api_version = raw_data.get("apiVersion", APPLICATION_API_VERSION)
    if api_version != APPLICATION_API_VERSION:
        line, col = line_map.get("apiVersion", (None, None))
        errors.append(
            ValidationErrorDetail(
                field="apiVersion",
                message=f"expected {APPLICATION_API_VERSION!r}",
                type="value_error",
                line=line,
                col=col,
                input_value=api_version,
            )
        )
    kind = raw_data.get("kind", "Application")
    if kind != "Application":
        line, col = line_map.get("kind", (None, None))
        errors.append(
            ValidationErrorDetail(
                field="kind",
                message="expected 'Application'",
                type="value_error",
                line=line,
                col=col,
                input_value=kind,
            )
        )

    data = {k: v for k, v in raw_data.items() if k != "status"}
    try:
        application = Application.model_validate(data)
    except ValidationError as e:
        for err in e.errors():
            loc = _clean_loc(err.get("loc", ()))
            field_path = ".".join(str(p) for p in loc)
            error_type = err.get("type", "unknown")
            line, col = _find_line_for_field(field_path, line_map)
            suggestion = _get_suggestion(loc) if error_type == "extra_forbidden" else None
            errors.append(
                ValidationErrorDetail(
                    field=field_path or "<root>",
                    message=err.get("msg", "Validation error"),
                    type=error_type,
                    line=line,
                    col=col,
                    suggestion=suggestion,
                    input_value=err.get("input"),
                )
            )
        return None, errors

    if errors:
        return None, errors
    application.apply_defaults()
    return application, []


def _syntax_error(e: YAMLParseError) -> ValidationErrorDetail:
    return ValidationErrorDetail(
        field="<yaml>",
        message=e.message,
        type="yaml_syntax_error",
        line=e.line,
        col=e.column,
    )


def validate_application_file(
    filepath: Path,
) -> tuple[Application | None, list[ValidationErrorDetail]]:
    """Validate an Application YAML file, reporting every error at once."""
    try:
        raw_data, line_map = parse_yaml_file(filepath)
    except YAMLParseError as e:
        return None, [_syntax_error(e)]

    if raw_data is None:
        return None, [
            ValidationErrorDetail(
                field="<yaml>",
                message="File is empty or contains only comments",
                type="empty_file",
            )
        ]
    return validate_application(raw_data, line_map)


def validate_application_string(
    source: str, filename: str = "<string>"
) -> tuple[Application | None, list[ValidationErrorDetail]]:
    """Validate an Application from a YAML string."""
    try:
        raw_data, line_map = parse_yaml_with_lines(source, filename=filename)
    except YAMLParseError as e:
        return None, [_syntax_error(e)]

    if raw_data is None:
        return None, [
            ValidationErrorDetail(
                field="<yaml>",
                message="Input is empty or contains only comments",
                type="empty_input",
            )
        ]
    return validate_application(raw_data, line_map)
