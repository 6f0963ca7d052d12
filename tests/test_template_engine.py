"""Tests for the template engine and its helper functions."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from redsky.errors import TemplateRenderError
from redsky.models.experiment import (
    Assignment,
    HelmValue,
    Metric,
    PatchTemplate,
    Trial,
    TrialSpec,
    TrialStatus,
)
from redsky.models.meta import ObjectMeta, ObjectReference
from redsky.template import TemplateEngine
from redsky.template.functions import duration, percent, resource_requests

START = datetime(2020, 1, 1, tzinfo=timezone.utc)

PODS = {
    "items": [
        {"spec": {"containers": [{"resources": {"requests": {"cpu": "500m", "memory": "1Ki"}}}]}},
        {"spec": {"containers": [{"resources": {"requests": {"cpu": "1"}}}]}},
    ]
}


def _trial(**status):
    return Trial(
        metadata=ObjectMeta(name="demo-001", namespace="default", labels={"app": "demo"}),
        spec=TrialSpec(
            assignments=[
                Assignment(name="replicas", value=3),
                Assignment(name="mode", value="fast"),
            ]
        ),
        status=TrialStatus(**status),
    )


class TestRenderPatch:
    """Tests for TemplateEngine.render_patch."""

    def test_yaml_patch_renders_to_json(self):
        """A YAML patch with assignments becomes a JSON document."""
        patch = PatchTemplate(
            patch='spec:\n  replicas: {{ values["replicas"] }}\n',
            target_ref=ObjectReference(api_version="apps/v1", kind="Deployment", name="web"),
        )
        result = TemplateEngine().render_patch(patch, _trial())
        assert json.loads(result) == {"spec": {"replicas": 3}}

    def test_patch_sees_trial_metadata(self):
        """The patch context exposes trial metadata."""
        patch = PatchTemplate(patch='metadata:\n  labels:\n    trial: "{{ trial.name }}"\n')
        result = TemplateEngine().render_patch(patch, _trial())
        assert json.loads(result) == {"metadata": {"labels": {"trial": "demo-001"}}}

    def test_undefined_value_raises(self):
        """Referencing a missing assignment raises TemplateRenderError."""
        patch = PatchTemplate(
            patch='spec:\n  replicas: {{ values["nope"] }}\n',
            target_ref=ObjectReference(name="web"),
        )
        with pytest.raises(TemplateRenderError) as exc_info:
            TemplateEngine().render_patch(patch, _trial())
        assert exc_info.value.name == "web"

    def test_syntax_error_raises(self):
        """An unparseable template raises TemplateRenderError named "patch"."""
        patch = PatchTemplate(patch="spec: {{ values[")
        with pytest.raises(TemplateRenderError) as exc_info:
            TemplateEngine().render_patch(patch, _trial())
        assert exc_info.value.name == "patch"

    def test_unquoted_date_kept_as_string(self):
        """Timestamp-looking scalars stay strings in the JSON output."""
        patch = PatchTemplate(patch="metadata:\n  annotations:\n    since: 2020-01-01\n")
        result = TemplateEngine().render_patch(patch, _trial())
        assert json.loads(result) == {"metadata": {"annotations": {"since": "2020-01-01"}}}

    def test_unconvertible_output_raises(self):
        """Output that cannot become JSON raises TemplateRenderError with the name."""
        patch = PatchTemplate(
            patch="spec:\n  data: !!binary aGVsbG8=\n",
            target_ref=ObjectReference(name="web"),
        )
        with pytest.raises(TemplateRenderError) as exc_info:
            TemplateEngine().render_patch(patch, _trial())
        assert exc_info.value.name == "web"

    def test_invalid_yaml_output_raises(self):
        """Rendered text that is not YAML raises TemplateRenderError."""
        patch = PatchTemplate(patch="spec: [unclosed")
        with pytest.raises(TemplateRenderError):
            TemplateEngine().render_patch(patch, _trial())


class TestRenderHelmValue:
    """Tests for TemplateEngine.render_helm_value."""

    def test_renders_assignment(self):
        """Helm values render against the patch context."""
        value = HelmValue(name="mode", value='{{ values["mode"] }}')
        assert TemplateEngine().render_helm_value(value, _trial()) == "fast"

    def test_literal_value(self):
        """Non-template values pass through as text."""
        assert TemplateEngine().render_helm_value(HelmValue(name="n", value=5), _trial()) == "5"


class TestRenderMetricQueries:
    """Tests for TemplateEngine.render_metric_queries."""

    def test_range_from_trial_times(self):
        """The range variable is the trial duration in whole seconds."""
        trial = _trial(start_time=START, completion_time=START + timedelta(seconds=90))
        metric = Metric(name="m", query="rate(x[{{ range }}])")
        query, error_query = TemplateEngine().render_metric_queries(metric, trial)
        assert query == "rate(x[90s])"
        assert error_query == ""

    def test_range_defaults_to_zero_without_times(self):
        """A trial without start or completion time has a zero range."""
        metric = Metric(name="m", query="{{ range }}")
        query, _ = TemplateEngine().render_metric_queries(metric, _trial(start_time=START))
        assert query == "0s"

    def test_duration_function(self):
        """The duration function is available to metric queries."""
        trial = _trial(start_time=START, completion_time=START + timedelta(seconds=30))
        metric = Metric(name="time", query="{{ duration(start_time, completion_time) }}")
        query, _ = TemplateEngine().render_metric_queries(metric, trial)
        assert query == "30.0"

    def test_resource_requests_function(self):
        """resource_requests sums weighted requests over the target pods."""
        metric = Metric(
            name="cost",
            query="{{ resource_requests(target, 'cpu=1') }}",
            error_query="{{ trial.metadata.name }}",
        )
        query, error_query = TemplateEngine().render_metric_queries(metric, _trial(), PODS)
        assert query == "1500.0"
        assert error_query == "demo-001"

    def test_error_names_metric(self):
        """Failures carry the metric name."""
        metric = Metric(name="broken", query="{{ missing }}")
        with pytest.raises(TemplateRenderError) as exc_info:
            TemplateEngine().render_metric_queries(metric, _trial())
        assert exc_info.value.name == "broken"

    def test_custom_functions(self):
        """Extra functions can be registered on the engine."""
        engine = TemplateEngine(functions={"double": lambda v: v * 2})
        metric = Metric(name="m", query='{{ double(values["replicas"]) }}')
        query, _ = engine.render_metric_queries(metric, _trial())
        assert query == "6"


class TestFunctions:
    """Tests for the template helper functions."""

    def test_duration_never_negative(self):
        """Reversed timestamps yield zero."""
        assert duration(START + timedelta(seconds=5), START) == 0.0
        assert duration(None, START) == 0.0

    def test_percent_truncates(self):
        """percent returns the truncated integer percentage."""
        assert percent(200, 50) == 100
        assert percent(3, 50) == 1

    def test_resource_requests_memory_in_bytes(self):
        """Memory requests are counted in bytes."""
        assert resource_requests(PODS, "memory=1") == 1024.0

    def test_resource_requests_combined_weights(self):
        """Weights are applied per resource and summed."""
        assert resource_requests(PODS, "cpu=2, memory=0.5") == 2 * 1500 + 0.5 * 1024

    def test_resource_requests_invalid_weights(self):
        """A weight without a value raises ValueError."""
        with pytest.raises(ValueError):
            resource_requests(PODS, "cpu")
