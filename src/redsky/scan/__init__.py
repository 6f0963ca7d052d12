"""Resource scanning."""

from redsky.scan.scanner import ResourceMeta, Scanner, Selector, Transformer

__all__ = ["ResourceMeta", "Scanner", "Selector", "Transformer"]
