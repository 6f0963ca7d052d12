"""Tests for the redsky generate and status CLI commands."""

import json

import yaml
from typer.testing import CliRunner

from redsky.cli.main import app

runner = CliRunner()

APPLICATION = """\
apiVersion: apps.redskyops.dev/v1alpha1
kind: Application
metadata:
  name: shop
resources:
  - deployment.yaml
ingress:
  url: http://shop.example.com
parameters:
  containerResources: {}
scenarios:
  - name: load
    locust:
      locustfile: locustfile.py
objectives:
  - name: perf
    goals:
      - latency:
          latencyType: p95
"""

DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
spec:
  template:
    spec:
      containers:
        - name: app
          resources:
            requests:
              cpu: 250m
"""


class TestGenerateExperiment:
    """Tests for redsky generate experiment."""

    def test_generates_experiment_and_extras(self, tmp_path):
        """The experiment is printed followed by its supporting manifests."""
        (tmp_path / "app.yaml").write_text(APPLICATION)
        (tmp_path / "deployment.yaml").write_text(DEPLOYMENT)
        (tmp_path / "locustfile.py").write_text("# locust\n")

        result = runner.invoke(app, ["generate", "experiment", "-f", str(tmp_path / "app.yaml")])
        assert result.exit_code == 0, result.output
        docs = list(yaml.safe_load_all(result.output))
        assert [d["kind"] for d in docs] == [
            "Experiment",
            "ConfigMap",
            "ServiceAccount",
            "ClusterRole",
            "ClusterRoleBinding",
        ]
        experiment = docs[0]
        assert experiment["metadata"]["name"] == "shop-load-perf"
        assert {p["name"] for p in experiment["spec"]["parameters"]} == {"cpu", "memory"}

    def test_name_option(self, tmp_path):
        """--name overrides the experiment name."""
        (tmp_path / "app.yaml").write_text(APPLICATION)
        (tmp_path / "deployment.yaml").write_text(DEPLOYMENT)
        (tmp_path / "locustfile.py").write_text("# locust\n")

        result = runner.invoke(
            app, ["generate", "experiment", "-f", str(tmp_path / "app.yaml"), "--name", "trial-run"]
        )
        assert result.exit_code == 0, result.output
        assert next(yaml.safe_load_all(result.output))["metadata"]["name"] == "trial-run"

    def test_unknown_objective(self, tmp_path):
        """Generation errors exit non-zero with a message."""
        (tmp_path / "app.yaml").write_text(APPLICATION)
        (tmp_path / "deployment.yaml").write_text(DEPLOYMENT)
        result = runner.invoke(
            app, ["generate", "experiment", "-f", str(tmp_path / "app.yaml"), "--objective", "nope"]
        )
        assert result.exit_code == 1
        assert "unknown objective" in result.output

    def test_no_application(self, tmp_path):
        """Input without an Application is rejected."""
        (tmp_path / "other.yaml").write_text(DEPLOYMENT)
        result = runner.invoke(app, ["generate", "experiment", "-f", str(tmp_path / "other.yaml")])
        assert result.exit_code == 1
        assert "no Application found" in result.output

    def test_stdin(self, tmp_path, monkeypatch):
        """The application can be piped on standard input."""
        (tmp_path / "deployment.yaml").write_text(DEPLOYMENT)
        (tmp_path / "locustfile.py").write_text("# locust\n")
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["generate", "experiment", "-f", "-"], input=APPLICATION)
        assert result.exit_code == 0, result.output
        assert next(yaml.safe_load_all(result.output))["kind"] == "Experiment"


class TestGenerateApplication:
    """Tests for redsky generate application."""

    def test_scans_resources(self, tmp_path):
        """The scanned application records its resources and objectives."""
        (tmp_path / "app.yaml").write_text(APPLICATION)
        path = str(tmp_path / "app.yaml")
        result = runner.invoke(
            app, ["generate", "application", "-r", path, "--objectives", "cost", "--name", "renamed"]
        )
        assert result.exit_code == 0, result.output
        [doc] = yaml.safe_load_all(result.output)
        assert doc["kind"] == "Application"
        assert doc["metadata"]["name"] == "renamed"
        assert "redskyops.dev/last-scanned" in doc["metadata"]["annotations"]
        assert [o["name"] for o in doc["objectives"]] == ["perf", "cost"]
        assert {"resource": {"resources": [path]}} in doc["resources"]

    def test_missing_resource(self, tmp_path):
        """Unreadable resources exit non-zero."""
        result = runner.invoke(app, ["generate", "application", "-r", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Error" in result.output


STATUS_MANIFESTS = """\
apiVersion: redskyops.dev/v1beta1
kind: Experiment
metadata:
  name: shop-load-perf
  namespace: default
  annotations:
    redskyops.dev/experiment-url: http://example.com/experiments/shop-load-perf
---
apiVersion: redskyops.dev/v1beta1
kind: Trial
metadata:
  name: shop-load-perf-001
  namespace: default
  labels:
    redskyops.dev/experiment: shop-load-perf
status:
  conditions:
    - type: Complete
      status: "True"
"""


class TestStatusCommand:
    """Tests for redsky status."""

    def test_table(self, tmp_path):
        """Experiments are listed with their phase."""
        (tmp_path / "state.yaml").write_text(STATUS_MANIFESTS)
        result = runner.invoke(app, ["status", "-f", str(tmp_path / "state.yaml")])
        assert result.exit_code == 0, result.output
        assert "shop-load-perf" in result.output
        assert "Idle" in result.output

    def test_json(self, tmp_path):
        """--json prints machine readable summaries."""
        (tmp_path / "state.yaml").write_text(STATUS_MANIFESTS)
        result = runner.invoke(app, ["status", "-f", str(tmp_path / "state.yaml"), "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [
            {
                "name": "shop-load-perf",
                "namespace": "default",
                "phase": "Idle",
                "active_trials": 0,
                "total_trials": 1,
            }
        ]

    def test_no_experiments(self, tmp_path):
        """Input without experiments says so."""
        (tmp_path / "state.yaml").write_text("kind: Service\n")
        result = runner.invoke(app, ["status", "-f", str(tmp_path / "state.yaml")])
        assert result.exit_code == 0
        assert "No experiments found" in result.output

    def test_missing_file(self, tmp_path):
        """Missing files are reported."""
        result = runner.invoke(app, ["status", "-f", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1

    def test_malformed_experiment(self, tmp_path):
        """Invalid Experiment manifests are reported without a traceback."""
        (tmp_path / "state.yaml").write_text(
            "apiVersion: redskyops.dev/v1beta1\nkind: Experiment\n"
            "metadata:\n  name: broken\nspec:\n  replicas: many\n"
        )
        result = runner.invoke(app, ["status", "-f", str(tmp_path / "state.yaml")])
        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "invalid Experiment 'broken'" in result.output


class TestGenerateErrors:
    """Tests for generation failures surfaced by the CLI."""

    def test_invalid_resource_request(self, tmp_path):
        """A malformed container request exits 1 with a clean message."""
        (tmp_path / "app.yaml").write_text(APPLICATION)
        (tmp_path / "deployment.yaml").write_text(DEPLOYMENT.replace("cpu: 250m", "cpu: lots"))
        (tmp_path / "locustfile.py").write_text("# locust\n")
        result = runner.invoke(app, ["generate", "experiment", "-f", str(tmp_path / "app.yaml")])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "invalid quantity 'lots'" in result.output
