"""Validation error formatting for terminals and CI logs.

Human mode prints an annotated source excerpt per error; CI mode prints
one ``file:line:col -- field: message`` line per error.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from redsky.loader.validator import ValidationErrorDetail


# Pydantic (and loader) error types -> error codes
ERROR_CODES: dict[str, str] = {
    "extra_forbidden": "E001",
    "missing": "E002",
    "value_error": "E003",
    "less_than_equal": "E003",
    "greater_than_equal": "E003",
    "string_type": "E004",
    "int_type": "E004",
    "int_parsing": "E004",
    "bool_type": "E004",
    "bool_parsing": "E004",
    "dict_type": "E004",
    "list_type": "E004",
    "model_type": "E004",
    "literal_error": "E005",
    "yaml_syntax_error": "E006",
    "empty_file": "E007",
    "empty_input": "E007",
}

ERROR_DESCRIPTIONS: dict[str, str] = {
    "E001": "unknown field",
    "E002": "required field missing",
    "E003": "invalid value",
    "E004": "type mismatch",
    "E005": "invalid literal",
    "E006": "YAML syntax error",
    "E007": "empty input",
}


def error_code(error_type: str) -> str:
    """Error code for an error type; partial matches count (``float_parsing``)."""
    if error_type in ERROR_CODES:
        return ERROR_CODES[error_type]
    for key, code in ERROR_CODES.items():
        if key in error_type:
            return code
    return "E999"


class ErrorFormatter:
    """Formats validation errors for humans or CI.

    Args:
        ci_mode: Use the one-line format. None means auto-detect from the
            ``CI`` environment variable.
        console: Console used by ``print_*``; stderr by default.
    """

    def __init__(self, ci_mode: bool | None = None, console: Console | None = None) -> None:
        if ci_mode is None:
            ci_mode = os.environ.get("CI", "").lower() in ("true", "1", "yes")
        self.ci_mode = ci_mode
        self.console = console or Console(stderr=True, highlight=False)

    def format_error(
        self, error: ValidationErrorDetail, source_lines: list[str], filename: str
    ) -> str:
        if self.ci_mode:
            return self._format_ci(error, filename)
        return self._format_annotated(error, source_lines, filename)

    def _format_ci(self, error: ValidationErrorDetail, filename: str) -> str:
        line = error.line or 0
        col = error.col or 0
        hint = f" ({error.suggestion})" if error.suggestion else ""
        return f"{filename}:{line}:{col} -- {error.field}: {error.message}{hint}"

    def _format_annotated(
        self, error: ValidationErrorDetail, source_lines: list[str], filename: str
    ) -> str:
        """Produce output like::

            error[E001]: unknown field
              --> app.yaml:7:5
               |
             7 |     usrs: 10
               |     ^^^^ Extra inputs are not permitted
               |
               = help: Did you mean 'users'?
        """
        code = error_code(error.type)
        out = [f"error[{code}]: {ERROR_DESCRIPTIONS.get(code, 'validation error')}"]

        index = (error.line or 0) - 1
        if error.line is None or not 0 <= index < len(source_lines):
            location = f"{filename}:{error.line}" if error.line is not None else filename
            out += [f"  --> {location}", "   |", f"   | {error.field}: {error.message}", "   |"]
        else:
            text = source_lines[index].rstrip()
            number = str(error.line)
            gutter = " " * len(number)
            key = error.field.rsplit(".", 1)[-1]
            start = text.find(key) if key else -1
            if start >= 0:
                marker = " " * start + "^" * len(key) + " " + error.message
            else:
                marker = error.message
            out += [
                f"  --> {filename}:{error.line}:{error.col or 1}",
                "   |",
                f" {number} | {text}",
                f" {gutter} | {marker}",
                "   |",
            ]

        if error.suggestion:
            out.append(f"   = help: {error.suggestion}")
        return "\n".join(out)

    def format_all(self, errors: list[ValidationErrorDetail], source: str, filename: str) -> str:
        """Format every error, separated by blank lines."""
        lines = source.splitlines()
        return "\n\n".join(self.format_error(e, lines, filename) for e in errors)

    def print_errors(self, errors: list[ValidationErrorDetail], source: str, filename: str) -> None:
        self.console.print(self.format_all(errors, source, filename), markup=False)

    def print_success(self, filename: str) -> None:
        self.console.print(f"  {filename} ... valid", markup=False)
