from __future__ import annotations

from typing import Any, Mapping

from kube_bgp.config import Node, NodeAddress


def node_from_kubernetes(obj: Any) -> Node:
    """Convert a ``V1Node`` into a :class:`Node`."""

    metadata = obj.metadata
    status = obj.status
    addresses = (status.addresses if status is not None else None) or []
    return Node(
        name=metadata.name,
        addresses=frozenset(
            NodeAddress.from_kubernetes(a.type, a.address) for a in addresses
        ),
        annotations=dict(metadata.annotations or {}),
    )


def node_from_mapping(entry: Mapping[str, Any]) -> Node:
    """Build a :class:`Node` from the JSON shape used by ``kubectl get nodes -o json``."""

    metadata = entry.get("metadata", {})
    name = metadata.get("name")
    if not name:
        raise ValueError("node entry missing metadata.name")
    addresses = entry.get("status", {}).get("addresses", [])
    return Node(
        name=str(name),
        addresses=frozenset(
            NodeAddress.from_kubernetes(str(a["type"]), str(a["address"]))
            for a in addresses
        ),
        annotations=dict(metadata.get("annotations") or {}),
    )
