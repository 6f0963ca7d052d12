"""Cluster and remote service synchronization."""

from redsky.server.codec import (
    FINALIZER,
    from_cluster,
    from_cluster_trial,
    stop_experiment,
    to_cluster,
    to_cluster_trial,
)

__all__ = [
    "FINALIZER",
    "from_cluster",
    "from_cluster_trial",
    "stop_experiment",
    "to_cluster",
    "to_cluster_trial",
]
