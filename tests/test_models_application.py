"""Tests for the Application and manifest metadata models."""

import pytest
from pydantic import ValidationError

from redsky.models.application import Application, CloudProvider, Goal, ResourceLocator, normalize_latency
from redsky.models.experiment import Experiment, Parameter
from redsky.models.meta import ObjectMeta, parse_label_selector, to_manifest


class TestApplication:
    """Tests for the Application model."""

    def test_camel_case_keys(self):
        """Manifest keys are camelCase."""
        app = Application.model_validate(
            {
                "cloudProvider": {"aws": {"cost": {"cpu": 20}}},
                "scenarios": [{"locust": {"spawnRate": 5}}],
            }
        )
        assert app.cloud_provider.cost() == {"cpu": "20"}
        assert app.scenarios[0].locust.spawn_rate == 5

    def test_scenario_kind_required(self):
        """Scenarios must set exactly one kind."""
        with pytest.raises(ValidationError, match="exactly one"):
            Application.model_validate({"scenarios": [{"locust": {}, "custom": {}}]})

    def test_goal_at_most_one_kind(self):
        """Goals may not mix kinds."""
        with pytest.raises(ValidationError, match="at most one"):
            Goal.model_validate({"duration": {}, "requests": {}})

    def test_goal_kind(self):
        """Goal.kind names the configured kind."""
        assert Goal.model_validate({"errorRate": {}}).kind == "error_rate"
        assert Goal(implemented=True).kind == "implemented"
        assert Goal().kind == ""

    def test_apply_defaults(self):
        """Unnamed scenarios and objectives get default names."""
        app = Application.model_validate(
            {
                "scenarios": [{"custom": {}}],
                "objectives": [
                    {"goals": [{"latency": {"latencyType": "p99"}}]},
                    {"goals": [{"duration": {}}, {"requests": {}}]},
                    {"goals": [{"duration": {}}]},
                ],
            }
        )
        app.apply_defaults()
        assert app.scenarios[0].name == "default"
        assert [o.name for o in app.objectives] == ["latency", "cost", ""]

    def test_resource_locator_shorthand(self):
        """A bare string is a single resource location."""
        locator = ResourceLocator.model_validate("manifests/")
        assert locator.resource.resources == ["manifests/"]
        assert locator.kubernetes is None

    def test_cloud_provider_precedence(self):
        """Provider specific costs win over the generic ones."""
        provider = CloudProvider.model_validate(
            {"generic": {"cost": {"cpu": "1"}}, "gcp": {"cost": {"cpu": "2"}}}
        )
        assert provider.cost() == {"cpu": "2"}
        assert CloudProvider().cost() == {}

    @pytest.mark.parametrize(
        "text, expected",
        [("p95", "percentile_95"), ("Median", "percentile_50"), ("avg", "mean"), ("odd", "odd")],
    )
    def test_normalize_latency(self, text, expected):
        """Latency aliases normalize to canonical names."""
        assert normalize_latency(text) == expected


class TestLabelSelector:
    """Tests for parse_label_selector."""

    def test_empty(self):
        """Empty selectors parse to None."""
        assert parse_label_selector("  ") is None

    def test_equality_and_sets(self):
        """Equality, inequality, set and existence requirements are supported."""
        selector = parse_label_selector("app=web,tier in (a, b),env!=prod,canary,!legacy")
        assert selector.match_labels == {"app": "web"}
        ops = [(r.key, r.operator, r.values) for r in selector.match_expressions]
        assert ops == [
            ("tier", "In", ["a", "b"]),
            ("env", "NotIn", ["prod"]),
            ("canary", "Exists", []),
            ("legacy", "DoesNotExist", []),
        ]

    def test_matches(self):
        """Selectors match label sets."""
        selector = parse_label_selector("app=web,tier notin (db)")
        assert selector.matches({"app": "web", "tier": "frontend"})
        assert not selector.matches({"app": "web", "tier": "db"})
        assert not selector.matches({"app": "api"})

    @pytest.mark.parametrize("text", ["app in (a", "a,,b", "bad key=x", "app=bad value!"])
    def test_invalid(self, text):
        """Malformed selectors raise ValueError."""
        with pytest.raises(ValueError):
            parse_label_selector(text)


class TestToManifest:
    """Tests for to_manifest."""

    def test_defaults_omitted(self):
        """Only non-default fields are emitted, with apiVersion and kind first."""
        experiment = Experiment(metadata=ObjectMeta(name="demo"))
        experiment.spec.parameters.append(Parameter(name="cpu", min=100, max=4000))
        manifest = to_manifest(experiment)
        assert list(manifest)[:2] == ["apiVersion", "kind"]
        assert manifest["metadata"] == {"name": "demo"}
        assert manifest["spec"]["parameters"] == [{"name": "cpu", "min": 100, "max": 4000}]
        assert "status" not in manifest

    def test_round_trip(self):
        """A manifest validates back into an equal model."""
        experiment = Experiment(metadata=ObjectMeta(name="demo", labels={"a": "b"}))
        assert Experiment.model_validate(to_manifest(experiment)) == experiment
