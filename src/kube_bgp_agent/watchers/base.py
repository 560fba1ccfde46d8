"""Abstract interfaces for cluster Node sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

from kube_bgp.config import Node


class NodeWatch(ABC):
    """Handle on an open change stream."""

    @abstractmethod
    def stop(self) -> None:
        """Close the stream; must be safe to call more than once."""


class NodeSource(ABC):
    """Where the :class:`~kube_bgp_agent.watchers.nodes.ClusterWatcher` reads Nodes from."""

    @abstractmethod
    def list_nodes(self) -> Sequence[Node]:
        """Return every Node currently in the cluster."""

    @abstractmethod
    def watch(self, on_event: Callable[[], None], timeout: float) -> NodeWatch:
        """Open a change stream.

        ``on_event`` is called for any event and when the stream ends.  Event
        payloads are never passed on: callers re-list instead.  Failure to open
        the stream raises from this call.
        """
