"""Application generation and resource reading."""

from redsky.application.generator import ApplicationGenerator, merge_applications
from redsky.application.resources import ResourceReader

__all__ = ["ApplicationGenerator", "ResourceReader", "merge_applications"]
