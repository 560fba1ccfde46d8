"""Derive the local node's GoBGP configuration from a cluster snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .addresses import ROUTER_ID_ANNOTATION, annotated_router_id, detect_router_id, peering_address
from .config import ClusterSnapshot, StaticPolicy
from .gobgp import GlobalSection, GoBGPDocument, NeighborSection

LOG = logging.getLogger(__name__)


class SynthesisError(Exception):
    """Raised when no configuration can be produced for a node."""

    reason = "SynthesisError"

    def __init__(self, node_name: str, message: str) -> None:
        super().__init__(message)
        self.node_name = node_name


class MissingRouterIDError(SynthesisError):
    """The node has no IPv4 address and no explicit router-ID."""

    reason = "MissingRouterID"

    def __init__(self, node_name: str) -> None:
        super().__init__(
            node_name,
            f"cannot determine a router-ID for node '{node_name}': set the "
            f"'routerID' policy field or annotate the node with "
            f"{ROUTER_ID_ANNOTATION}=<ipv4 address>",
        )


@dataclass(frozen=True)
class RenderedConfig:
    """Result of a synthesis; equality is on the rendered text only."""

    text: str
    document: GoBGPDocument = field(compare=False, repr=False)

    @property
    def internal_peers(self) -> Sequence[NeighborSection]:
        return [n for n in self.document.neighbors if not n.reflected]

    @property
    def external_peers(self) -> Sequence[NeighborSection]:
        return [n for n in self.document.neighbors if n.reflected]


def resolve_router_id(
    local_node_name: str, snapshot: ClusterSnapshot, policy: StaticPolicy
) -> str:
    """Return the router-ID: policy override, node annotation, then IPv4 address."""

    if policy.router_id_override:
        return policy.router_id_override

    node = snapshot.get(local_node_name)
    if node is not None:
        router_id = annotated_router_id(node) or detect_router_id(node)
        if router_id:
            return router_id
    else:
        LOG.debug("local node %s is not part of the snapshot", local_node_name)

    raise MissingRouterIDError(local_node_name)


def synthesize(
    local_node_name: str, snapshot: ClusterSnapshot, policy: StaticPolicy
) -> RenderedConfig:
    router_id = resolve_router_id(local_node_name, snapshot, policy)
    document = GoBGPDocument(GlobalSection(router_id=router_id, asn=policy.asn))

    # Snapshot iteration is ordered by node name.
    for node in snapshot:
        if node.name == local_node_name:
            continue
        address = peering_address(node)
        if address is None:
            LOG.warning("node %s has no usable peering address; skipping", node.name)
            continue
        document.add_internal_peer(node.name, address)

    for router in policy.routers_for(local_node_name):
        document.add_reflected_peer(router.address, policy.peer_asn(router))

    return RenderedConfig(text=document.render(), document=document)
