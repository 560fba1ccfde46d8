"""Node source backed by a JSON node list."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Sequence

from kube_bgp.config import Node

from .base import NodeSource, NodeWatch
from .utils import node_from_mapping


class _IdleWatch(NodeWatch):
    def stop(self) -> None:
        pass


class StaticNodeSource(NodeSource):
    """Serve a fixed set of Nodes; the watch never fires."""

    def __init__(self, nodes: Sequence[Node]) -> None:
        self._nodes = list(nodes)

    @classmethod
    def from_file(cls, path: Path) -> "StaticNodeSource":
        payload = json.loads(Path(path).read_text())
        items = payload.get("items") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise ValueError("node list must be a JSON list or an object with 'items'")
        return cls([node_from_mapping(item) for item in items])

    def list_nodes(self) -> Sequence[Node]:
        return list(self._nodes)

    def watch(self, on_event: Callable[[], None], timeout: float) -> NodeWatch:
        return _IdleWatch()
