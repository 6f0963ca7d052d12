"""Prometheus query goals and the built-in Prometheus setup task."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from redsky.generation.base import Source, new_goal_metric
from redsky.models.application import Goal
from redsky.models.experiment import Experiment, Metric, MetricType, SetupTask

RBAC_GROUP = "rbac.authorization.k8s.io"


def prometheus_source(goal: Goal) -> Source:
    def metrics() -> list[Metric]:
        if goal.implemented or goal.prometheus is None:
            return []
        m = new_goal_metric(goal, goal.prometheus.query)
        m.url = goal.prometheus.url
        m.minimize = not goal.prometheus.maximize
        return [m]

    return Source(name="prometheus", metrics=metrics)


@dataclass
class BuiltInPrometheus:
    """Provision a throwaway Prometheus when a metric needs one.

    Only metrics of type prometheus without an explicit URL trigger it.
    ``update`` adds the setup task and service account to the trial
    template; ``read`` returns the service account and the RBAC it needs.
    """

    setup_task_name: str = "monitoring"
    cluster_role_name: str = "redsky-prometheus"
    service_account_name: str = "redsky-setup"
    cluster_role_binding_name: str = "redsky-setup-prometheus"
    objects: list[dict[str, Any]] = field(default_factory=list)

    def update(self, experiment: Experiment) -> None:
        if not any(
            m.type == MetricType.PROMETHEUS and not m.url for m in experiment.spec.metrics
        ):
            return

        spec = experiment.spec.trial_template.spec
        spec.setup_service_account_name = self.service_account_name
        if any(t.name == self.setup_task_name for t in spec.setup_tasks):
            return
        spec.setup_tasks.append(SetupTask(name=self.setup_task_name, args=["prometheus", "$(MODE)"]))
        self.objects.extend(
            [
                {
                    "apiVersion": "v1",
                    "kind": "ServiceAccount",
                    "metadata": {"name": self.service_account_name},
                },
                {
                    "apiVersion": f"{RBAC_GROUP}/v1",
                    "kind": "ClusterRole",
                    "metadata": {"name": self.cluster_role_name},
                    "rules": _cluster_role_rules(),
                },
                {
                    "apiVersion": f"{RBAC_GROUP}/v1",
                    "kind": "ClusterRoleBinding",
                    "metadata": {"name": self.cluster_role_binding_name},
                    "roleRef": {
                        "apiGroup": RBAC_GROUP,
                        "kind": "ClusterRole",
                        "name": self.cluster_role_name,
                    },
                    "subjects": [{"kind": "ServiceAccount", "name": self.service_account_name}],
                },
            ]
        )

    def read(self) -> list[dict[str, Any]]:
        return list(self.objects)

    def as_source(self) -> Source:
        return Source(name="builtin-prometheus", update=self.update, read=self.read)


def _cluster_role_rules() -> list[dict[str, list[str]]]:
    return [
        # Manage the Prometheus resources from the setup task
        {
            "verbs": ["get", "create", "delete"],
            "apiGroups": [RBAC_GROUP],
            "resources": ["clusterroles", "clusterrolebindings"],
        },
        {
            "verbs": ["get", "create", "delete"],
            "apiGroups": [""],
            "resources": ["serviceaccounts", "services", "configmaps"],
        },
        {
            "verbs": ["get", "create", "delete", "list", "watch"],
            "apiGroups": ["apps"],
            "resources": ["deployments"],
        },
        # Delegated to the Prometheus server itself
        {
            "verbs": ["list", "watch", "get"],
            "apiGroups": [""],
            "resources": ["nodes", "nodes/metrics", "nodes/proxy", "services"],
        },
        {
            "verbs": ["list", "watch"],
            "apiGroups": [""],
            "resources": ["pods"],
        },
    ]
