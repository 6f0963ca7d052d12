"""Manifest loading and Application validation."""

from redsky.loader.errors import ErrorFormatter
from redsky.loader.validator import (
    ValidationErrorDetail,
    validate_application,
    validate_application_file,
    validate_application_string,
)
from redsky.loader.yaml_parser import (
    YAMLParseError,
    dump_manifests,
    parse_yaml_file,
    parse_yaml_with_lines,
    read_manifest_files,
    read_manifests,
)

__all__ = [
    "ErrorFormatter",
    "ValidationErrorDetail",
    "YAMLParseError",
    "dump_manifests",
    "parse_yaml_file",
    "parse_yaml_with_lines",
    "read_manifest_files",
    "read_manifests",
    "validate_application",
    "validate_application_file",
    "validate_application_string",
]
