"""Watcher implementations used by the kube-bgp agent."""

from .base import NodeSource, NodeWatch  # noqa: F401
from .kubernetes import KubernetesNodeSource, create_kubernetes_source  # noqa: F401
from .nodes import ChangeSignal, ClusterWatcher, WatcherState, diff_snapshots  # noqa: F401
from .static import StaticNodeSource  # noqa: F401

__all__ = [
    "ChangeSignal",
    "ClusterWatcher",
    "KubernetesNodeSource",
    "NodeSource",
    "NodeWatch",
    "StaticNodeSource",
    "WatcherState",
    "create_kubernetes_source",
    "diff_snapshots",
]
