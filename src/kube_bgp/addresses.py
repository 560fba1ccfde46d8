"""Peering address and router-ID resolution helpers."""

from __future__ import annotations

import ipaddress
import logging
from typing import Iterable, Optional, Sequence, Tuple

from .config import AddressType, Node, NodeAddress

LOG = logging.getLogger(__name__)

ROUTER_ID_ANNOTATION = "kube-bgp.io/router-id"

# Preference order for the address used to peer with a node.
PEERING_PREFERENCE: Sequence[Tuple[AddressType, int]] = (
    (AddressType.INTERNAL_IP, 4),
    (AddressType.EXTERNAL_IP, 4),
    (AddressType.INTERNAL_IP, 6),
    (AddressType.EXTERNAL_IP, 6),
)

ROUTER_ID_PREFERENCE: Sequence[Tuple[AddressType, int]] = PEERING_PREFERENCE[:2]


def _select(
    addresses: Iterable[NodeAddress],
    preference: Sequence[Tuple[AddressType, int]],
) -> Optional[str]:
    candidates = [(a.type, a.ip) for a in addresses if a.ip is not None]
    for kind, version in preference:
        matching = sorted(
            ip for t, ip in candidates if t is kind and ip.version == version
        )
        if matching:
            return str(matching[0])
    return None


def peering_address(node: Node) -> Optional[str]:
    """Return the address other speakers should use to reach ``node``."""

    return _select(node.addresses, PEERING_PREFERENCE)


def detect_router_id(node: Node) -> Optional[str]:
    """Pick an IPv4 address of ``node`` to use as its router-ID."""

    return _select(node.addresses, ROUTER_ID_PREFERENCE)


def annotated_router_id(node: Node) -> Optional[str]:
    value = node.annotations.get(ROUTER_ID_ANNOTATION)
    if not value:
        return None
    try:
        return str(ipaddress.IPv4Address(value.strip()))
    except ValueError:
        LOG.warning(
            "ignoring invalid %s annotation %r on node %s",
            ROUTER_ID_ANNOTATION,
            value,
            node.name,
        )
        return None
