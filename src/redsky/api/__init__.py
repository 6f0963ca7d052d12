"""Remote experiments service client."""

from redsky.api.client import ExperimentsAPI, parse_links

__all__ = ["ExperimentsAPI", "parse_links"]
