"""Exception hierarchy shared by the generation, template and resource layers.

Remote service failures live in ``redsky.models.remote`` next to the wire
types they describe.
"""

from __future__ import annotations


class RedSkyError(Exception):
    """Base class for all errors raised by this package."""


class GenerationError(RedSkyError):
    """Raised when an Application cannot be turned into an Experiment.

    Covers missing scenario data (no Locust file, no ingress), unknown
    scenario or objective names and malformed selectors.
    """


class ResourceReadError(RedSkyError):
    """Raised when a resource locator cannot be read or expanded.

    Attributes:
        locator: The path, URL or description of the failing input.
    """

    def __init__(self, message: str, locator: str = "") -> None:
        self.locator = locator
        super().__init__(f"{locator}: {message}" if locator else message)


class TemplateRenderError(RedSkyError):
    """Raised when a template fails to parse, execute or convert.

    Attributes:
        name: Name of the template (metric name, helm value or "patch").
        cause: The underlying exception.
    """

    def __init__(self, name: str, cause: Exception) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"template {name!r}: {cause}")
