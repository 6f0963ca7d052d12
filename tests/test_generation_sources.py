"""Tests for the scenario and goal sources used by experiment generation."""

import pytest

from redsky.errors import GenerationError, ResourceReadError
from redsky.generation import SOURCE_REGISTRY, get_source
from redsky.generation.base import SourceContext, load_application_data, parse_duration
from redsky.generation.custom import custom_source
from redsky.generation.duration import duration_source
from redsky.generation.locust import locust_latency, locust_source
from redsky.generation.prometheus import BuiltInPrometheus, prometheus_source
from redsky.generation.requests import requests_metric, requests_query
from redsky.models.application import Application, Goal
from redsky.models.experiment import Experiment, Metric, MetricType


def _context(app_data, tmp_path=None):
    app = Application.model_validate(app_data)
    app.apply_defaults()
    ctx = SourceContext(
        application=app,
        scenario=app.scenarios[0] if app.scenarios else None,
        objective=app.objectives[0] if app.objectives else None,
    )
    if tmp_path is not None:
        ctx.working_dir = tmp_path
    return ctx


def _locust_app(goals=None, ingress="http://demo.example.com", locustfile="locustfile.py"):
    data = {
        "metadata": {"name": "demo"},
        "scenarios": [
            {
                "name": "load",
                "locust": {"locustfile": locustfile, "users": 10, "spawnRate": 2, "runTime": "1m"},
            }
        ],
        "objectives": [{"name": "perf", "goals": goals or []}],
    }
    if ingress:
        data["ingress"] = {"url": ingress}
    return data


def _pod_spec(experiment):
    return experiment.spec.trial_template.spec.job_template["spec"]["template"]["spec"]


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "text, seconds",
        [("90s", 90.0), ("1m", 60.0), ("1h30m", 5400.0), ("1.5s", 1.5), ("500ms", 0.5), ("45", 45.0)],
    )
    def test_valid(self, text, seconds):
        """Go style durations and bare numbers are accepted."""
        assert parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "bogus", "10x", "1m junk"])
    def test_invalid(self, text):
        """Anything else raises ValueError."""
        with pytest.raises(ValueError):
            parse_duration(text)


class TestLoadApplicationData:
    """Tests for load_application_data."""

    def test_relative_path(self, tmp_path):
        """Relative paths resolve against the working directory."""
        (tmp_path / "data.txt").write_text("hello")
        ctx = _context({"metadata": {"name": "demo"}}, tmp_path)
        assert load_application_data(ctx, "data.txt") == "hello"

    def test_missing_file(self, tmp_path):
        """A missing file raises ResourceReadError naming the path."""
        ctx = _context({"metadata": {"name": "demo"}}, tmp_path)
        with pytest.raises(ResourceReadError) as exc_info:
            load_application_data(ctx, "missing.txt")
        assert "missing.txt" in exc_info.value.locator


class TestRegistry:
    """Tests for the scenario source registry."""

    def test_known_kinds(self):
        """Locust and custom scenarios are registered."""
        assert set(SOURCE_REGISTRY) == {"locust", "custom"}

    def test_unknown_kind(self):
        """Unknown kinds raise ValueError listing the available ones."""
        ctx = _context({"metadata": {"name": "demo"}})
        with pytest.raises(ValueError, match="Unknown scenario type"):
            get_source("jmeter", ctx)


class TestLocustSource:
    """Tests for the Locust scenario source."""

    def test_latency_names(self):
        """Latency spellings map onto Locust metric names."""
        assert locust_latency("p95") == "p95"
        assert locust_latency("percentile_99") == "p99"
        assert locust_latency("average") == "average_response_time"
        assert locust_latency("bogus") == ""

    def test_p95_latency_metric(self):
        """A p95 latency goal yields exactly one metric querying p95."""
        ctx = _context(_locust_app([{"latency": {"latencyType": "p95"}}]))
        metrics = locust_source(ctx).metrics()
        assert len(metrics) == 1
        assert metrics[0].name == "latency"
        assert metrics[0].type == MetricType.PROMETHEUS
        assert "p95" in metrics[0].query
        assert "{{ trial.metadata.name }}" in metrics[0].query

    def test_unknown_latency_no_metric(self):
        """An unsupported latency type produces no metric."""
        ctx = _context(_locust_app([{"latency": {"latencyType": "p42"}}]))
        assert locust_source(ctx).metrics() == []

    def test_error_rate_metric(self):
        """Request error rate becomes a failure ratio query."""
        ctx = _context(_locust_app([{"name": "errors", "errorRate": {"errorRateType": "requests"}}]))
        [metric] = locust_source(ctx).metrics()
        assert metric.name == "errors"
        assert "failure_count" in metric.query
        assert "request_count" in metric.query

    def test_implemented_goals_skipped(self):
        """Goals marked implemented are left alone."""
        ctx = _context(_locust_app([{"implemented": True, "latency": {"latencyType": "p95"}}]))
        assert locust_source(ctx).metrics() == []

    def test_update_configures_job(self):
        """update adds the Locust container, environment and locustfile volume."""
        ctx = _context(_locust_app())
        experiment = Experiment()
        locust_source(ctx).update(experiment)
        pod = _pod_spec(experiment)
        [container] = pod["containers"]
        assert container["name"] == "locust"
        assert container["image"].endswith("-locust")
        env = {e["name"]: e["value"] for e in container["env"]}
        assert env == {
            "NUM_USERS": "10",
            "SPAWN_RATE": "2",
            "RUN_TIME": "60",
            "HOST": "http://demo.example.com",
        }
        assert pod["volumes"] == [{"name": "locustfile", "configMap": {"name": "load-locustfile"}}]

    def test_missing_ingress(self):
        """Locust scenarios require an ingress URL."""
        ctx = _context(_locust_app(ingress=""))
        with pytest.raises(GenerationError, match="Locust scenarios"):
            locust_source(ctx).update(Experiment())

    def test_read_locustfile(self, tmp_path):
        """read wraps the locustfile in a ConfigMap."""
        (tmp_path / "locustfile.py").write_text("from locust import HttpUser\n")
        ctx = _context(_locust_app(), tmp_path)
        [config_map] = locust_source(ctx).read()
        assert config_map["kind"] == "ConfigMap"
        assert config_map["metadata"]["name"] == "load-locustfile"
        assert config_map["data"]["locustfile.py"].startswith("from locust")

    def test_read_without_locustfile(self):
        """A scenario without a locustfile cannot be read."""
        ctx = _context(_locust_app(locustfile=""))
        with pytest.raises(GenerationError, match="missing Locust file"):
            locust_source(ctx).read()


class TestCustomSource:
    """Tests for the custom scenario source."""

    def _app(self, custom, goals=None):
        return {
            "metadata": {"name": "demo"},
            "scenarios": [{"custom": custom}],
            "objectives": [{"goals": goals or []}],
        }

    def test_pod_template_copied_and_named(self):
        """The pod template is copied and unnamed containers get the image name."""
        pod_template = {"spec": {"containers": [{"image": "example.com/org/loadgen:1.0"}]}}
        ctx = _context(self._app({"podTemplate": pod_template, "initialDelaySeconds": 5}))
        experiment = Experiment()
        custom_source(ctx).update(experiment)
        assert _pod_spec(experiment)["containers"] == [
            {"image": "example.com/org/loadgen:1.0", "name": "loadgen"}
        ]
        assert experiment.spec.trial_template.spec.initial_delay_seconds == 5
        assert pod_template["spec"]["containers"][0] == {"image": "example.com/org/loadgen:1.0"}

    def test_image_only(self):
        """An image alone creates a single container."""
        ctx = _context(self._app({"image": "busybox", "approximateRuntimeSeconds": 30}))
        experiment = Experiment()
        custom_source(ctx).update(experiment)
        assert _pod_spec(experiment)["containers"] == [{"image": "busybox", "name": "busybox"}]
        assert experiment.spec.trial_template.spec.approximate_runtime == "30s"

    def test_requests_metric(self):
        """Requests goals produce a cost metric."""
        ctx = _context(self._app({"image": "busybox"}, [{"requests": {}}]))
        [metric] = custom_source(ctx).metrics()
        assert metric.name == "cost"
        assert metric.type == MetricType.KUBERNETES

    def test_push_gateway_skips_requests(self):
        """With a push gateway the cost metric is not generated."""
        ctx = _context(self._app({"image": "busybox", "usePushGateway": True}, [{"requests": {}}]))
        assert custom_source(ctx).metrics() == []


class TestRequestsGoal:
    """Tests for resource request goals."""

    def test_default_weights(self):
        """Without weights the default cost weights are used."""
        assert requests_query({"cpu": "17", "memory": "2"}) == (
            '{{ resource_requests(target, "cpu=0.017,memory=0.000000000002") }}'
        )

    def test_cloud_provider_weights(self):
        """Cloud provider costs are used when the goal has no weights."""
        ctx = _context(
            {
                "metadata": {"name": "demo"},
                "cloudProvider": {"generic": {"cost": {"cpu": "20", "memory": "3"}}},
                "objectives": [{"goals": [{"requests": {"selector": "app=demo"}}]}],
            }
        )
        goal = ctx.objective.goals[0]
        metric = requests_metric(goal, ctx)
        assert "cpu=0.02,memory=0.000000000003" in metric.query
        assert metric.target.kind == "PodList"
        assert metric.target.label_selector.match_labels == {"app": "demo"}

    def test_goal_weights_win(self):
        """Weights on the goal take precedence."""
        ctx = _context(
            {
                "metadata": {"name": "demo"},
                "cloudProvider": {"generic": {"cost": {"cpu": "20"}}},
                "objectives": [{"goals": [{"requests": {"weights": {"cpu": 1}}}]}],
            }
        )
        metric = requests_metric(ctx.objective.goals[0], ctx)
        assert metric.query == '{{ resource_requests(target, "cpu=0.001") }}'

    def test_bad_selector(self):
        """An unparseable selector raises GenerationError."""
        ctx = _context(
            {
                "metadata": {"name": "demo"},
                "objectives": [{"goals": [{"requests": {"selector": "app in (a"}}]}],
            }
        )
        with pytest.raises(GenerationError):
            requests_metric(ctx.objective.goals[0], ctx)


class TestDurationAndPrometheusGoals:
    """Tests for the duration and prometheus goal sources."""

    def test_duration(self):
        """Trial duration goals measure the trial run time."""
        [metric] = duration_source(Goal(duration={})).metrics()
        assert metric.name == "duration"
        assert metric.type == MetricType.KUBERNETES
        assert "duration(start_time, completion_time)" in metric.query

    def test_unknown_duration_type(self):
        """Other duration types are not supported."""
        assert duration_source(Goal(duration={"durationType": "setup"})).metrics() == []

    def test_prometheus(self):
        """Prometheus goals copy the query and URL and honor maximize."""
        goal = Goal(
            name="throughput",
            prometheus={"query": "sum(rate(x[1m]))", "url": "http://prom:9090", "maximize": True},
        )
        [metric] = prometheus_source(goal).metrics()
        assert metric.name == "throughput"
        assert metric.query == "sum(rate(x[1m]))"
        assert metric.url == "http://prom:9090"
        assert metric.minimize is False


class TestBuiltInPrometheus:
    """Tests for BuiltInPrometheus."""

    def test_adds_setup_task_for_prometheus_metrics(self):
        """A prometheus metric without a URL adds the setup task and RBAC."""
        experiment = Experiment()
        experiment.spec.metrics.append(Metric(name="m", type=MetricType.PROMETHEUS, query="up"))
        builtin = BuiltInPrometheus()
        builtin.update(experiment)
        spec = experiment.spec.trial_template.spec
        assert [t.name for t in spec.setup_tasks] == ["monitoring"]
        assert spec.setup_service_account_name == "redsky-setup"
        assert [o["kind"] for o in builtin.read()] == [
            "ServiceAccount",
            "ClusterRole",
            "ClusterRoleBinding",
        ]

    def test_idempotent(self):
        """Running update twice does not duplicate the task or objects."""
        experiment = Experiment()
        experiment.spec.metrics.append(Metric(name="m", type=MetricType.PROMETHEUS, query="up"))
        builtin = BuiltInPrometheus()
        builtin.update(experiment)
        builtin.update(experiment)
        assert len(experiment.spec.trial_template.spec.setup_tasks) == 1
        assert len(builtin.read()) == 3

    def test_not_needed_with_explicit_url(self):
        """Metrics with their own Prometheus URL do not need the setup task."""
        experiment = Experiment()
        experiment.spec.metrics.append(
            Metric(name="m", type=MetricType.PROMETHEUS, query="up", url="http://prom:9090")
        )
        builtin = BuiltInPrometheus()
        builtin.update(experiment)
        assert experiment.spec.trial_template.spec.setup_tasks == []
        assert builtin.read() == []
