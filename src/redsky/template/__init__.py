"""Template rendering against trial snapshots."""

from redsky.template.engine import MetricData, PatchData, TemplateEngine

__all__ = ["MetricData", "PatchData", "TemplateEngine"]
