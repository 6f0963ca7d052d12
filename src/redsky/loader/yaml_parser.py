"""YAML reading and writing for manifests.

Application files are parsed with a loader that records the source line
of every key, so validation errors can point at the offending line.
Manifest streams (several ``---`` separated documents) are read and
written with the plain safe loader/dumper.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Any

import yaml


class YAMLParseError(Exception):
    """Raised when YAML syntax cannot be parsed.

    Attributes:
        line: 1-indexed line number where the error occurred.
        column: 1-indexed column number where the error occurred.
        message: Human-readable description of the syntax error.
        filename: Name of the file being parsed, or '<string>'.
    """

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        filename: str = "<string>",
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.filename = filename
        super().__init__(message)

    @classmethod
    def from_yaml_error(cls, exc: yaml.YAMLError, filename: str) -> YAMLParseError:
        mark = getattr(exc, "problem_mark", None)
        if mark is None:
            return cls(str(exc), filename=filename)
        return cls(str(exc), line=mark.line + 1, column=mark.column + 1, filename=filename)


class LineTrackingLoader(yaml.SafeLoader):
    """SafeLoader that records the position of every mapping key.

    ``line_map`` maps dotted key paths (list items use their index, e.g.
    ``scenarios.0.locust.users``) to 1-indexed (line, column) tuples.
    """

    def __init__(self, stream: str) -> None:
        super().__init__(stream)
        self.line_map: dict[str, tuple[int, int]] = {}
        self._path: list[str] = []

    def _record(self, key: str, node: yaml.Node) -> None:
        mark = node.start_mark
        if mark is not None:
            self.line_map[".".join([*self._path, key])] = (mark.line + 1, mark.column + 1)

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[str, Any]:
        self.flatten_mapping(node)
        result: dict[Any, Any] = {}
        for key_node, value_node in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, str):
                result[key] = self.construct_object(value_node, deep=deep)
                continue

            self._record(key, key_node)
            self._path.append(key)
            try:
                result[key] = self._construct_child(value_node, deep)
            finally:
                self._path.pop()
        return result

    def construct_sequence(self, node: yaml.SequenceNode, deep: bool = False) -> list[Any]:
        items = []
        for index, child in enumerate(node.value):
            self._record(str(index), child)
            self._path.append(str(index))
            try:
                items.append(self._construct_child(child, deep))
            finally:
                self._path.pop()
        return items

    def _construct_child(self, node: yaml.Node, deep: bool) -> Any:
        if isinstance(node, yaml.MappingNode):
            return self.construct_mapping(node, deep=True)
        if isinstance(node, yaml.SequenceNode):
            return self.construct_sequence(node, deep=True)
        return self.construct_object(node, deep=deep)

    def construct_yaml_map(self, node: yaml.MappingNode) -> Any:
        yield self.construct_mapping(node, deep=True)

    def construct_yaml_seq(self, node: yaml.SequenceNode) -> Any:
        yield self.construct_sequence(node, deep=True)


LineTrackingLoader.add_constructor("tag:yaml.org,2002:map", LineTrackingLoader.construct_yaml_map)
LineTrackingLoader.add_constructor("tag:yaml.org,2002:seq", LineTrackingLoader.construct_yaml_seq)


def parse_yaml_with_lines(
    source: str,
    filename: str = "<string>",
) -> tuple[dict | None, dict[str, tuple[int, int]]]:
    """Parse a single YAML document and return (data, line_map).

    Returns (None, {}) for empty input or a non-mapping document.

    Raises:
        YAMLParseError: If the YAML contains syntax errors.
    """
    loader = LineTrackingLoader(source)
    try:
        data = loader.get_single_data()
    except yaml.YAMLError as e:
        raise YAMLParseError.from_yaml_error(e, filename) from e
    finally:
        loader.dispose()

    if data is None or not isinstance(data, dict):
        return None, {}
    return data, loader.line_map


def parse_yaml_file(filepath: Path) -> tuple[dict | None, dict[str, tuple[int, int]]]:
    """Parse a YAML file with line tracking.

    Raises:
        YAMLParseError: If the file contains YAML syntax errors.
        FileNotFoundError: If the file does not exist.
    """
    return parse_yaml_with_lines(filepath.read_text(encoding="utf-8"), filename=str(filepath))


def read_manifests(source: str | IO[str], filename: str = "<string>") -> list[dict[str, Any]]:
    """Read every non-empty document of a manifest stream.

    ``kind: List`` documents are flattened into their items.

    Raises:
        YAMLParseError: If the stream is not valid YAML.
    """
    try:
        docs = list(yaml.safe_load_all(source))
    except yaml.YAMLError as e:
        raise YAMLParseError.from_yaml_error(e, filename) from e

    result: list[dict[str, Any]] = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        if doc.get("kind") == "List" and isinstance(doc.get("items"), list):
            result.extend(i for i in doc["items"] if isinstance(i, dict))
        else:
            result.append(doc)
    return result


def read_manifest_files(paths: list[str], stdin: IO[str] | None = None) -> list[dict[str, Any]]:
    """Read manifests from files, with ``-`` meaning standard input."""
    result: list[dict[str, Any]] = []
    for p in paths:
        if p == "-":
            if stdin is None:
                raise YAMLParseError("standard input is not available", filename=p)
            result.extend(read_manifests(stdin.read(), filename="<stdin>"))
        else:
            result.extend(read_manifests(Path(p).read_text(encoding="utf-8"), filename=p))
    return result


def dump_manifests(docs: list[dict[str, Any]]) -> str:
    """Serialize manifests as a ``---`` separated stream, keeping key order."""
    return yaml.safe_dump_all(docs, sort_keys=False, default_flow_style=False)
