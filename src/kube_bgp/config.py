"""Data structures shared by the watcher and the synthesizer.

Everything here is immutable.  A :class:`ClusterSnapshot` is replaced, never
mutated, when the cluster changes, and the :class:`StaticPolicy` is built once
from the policy document and passed explicitly wherever it is needed.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple


class AddressType(Enum):
    """Kubernetes ``NodeAddress.type`` values."""

    INTERNAL_IP = "InternalIP"
    EXTERNAL_IP = "ExternalIP"
    HOSTNAME = "Hostname"
    INTERNAL_DNS = "InternalDNS"
    EXTERNAL_DNS = "ExternalDNS"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> "AddressType":
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


@dataclass(frozen=True)
class NodeAddress:
    """A single address reported for a Node.

    ``raw_type`` keeps the original type string so that two addresses of
    unknown types never compare equal by accident.
    """

    type: AddressType
    value: str
    raw_type: str = ""

    @classmethod
    def from_kubernetes(cls, type_: str, value: str) -> "NodeAddress":
        kind = AddressType.parse(type_)
        return cls(
            type=kind,
            value=value,
            raw_type=type_ if kind is AddressType.OTHER else "",
        )

    @property
    def ip(self) -> Optional[ipaddress.IPv4Address | ipaddress.IPv6Address]:
        try:
            return ipaddress.ip_address(self.value)
        except ValueError:
            return None

    @property
    def version(self) -> Optional[int]:
        ip = self.ip
        return ip.version if ip is not None else None


@dataclass(frozen=True)
class Node:
    """A cluster Node; ``name`` is its identity."""

    name: str
    addresses: frozenset[NodeAddress] = frozenset()
    annotations: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)


class ClusterSnapshot:
    """Immutable set of Nodes keyed by name."""

    __slots__ = ("_nodes", "_by_name")

    def __init__(self, nodes: Iterable[Node] = ()) -> None:
        by_name: Dict[str, Node] = {}
        for node in nodes:
            if node.name in by_name:
                raise ValueError(f"duplicate node name '{node.name}' in snapshot")
            by_name[node.name] = node
        self._by_name = by_name
        self._nodes: Tuple[Node, ...] = tuple(
            by_name[name] for name in sorted(by_name)
        )

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return self.get(name) is not None  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"ClusterSnapshot({list(self.names())!r})"

    def get(self, name: str) -> Optional[Node]:
        return self._by_name.get(name)

    def names(self) -> Sequence[str]:
        return [n.name for n in self._nodes]


@dataclass(frozen=True)
class Router:
    """External eBGP router that some nodes reflect routes to.

    Attributes
    ----------
    address:
        The router's IP address.
    asn:
        The router's ASN.  ``None`` means "same as the cluster".
    peer_node_names:
        Names of the Nodes acting as route reflectors towards this router.
    """

    address: str
    asn: Optional[int] = None
    peer_node_names: frozenset[str] = frozenset()


@dataclass(frozen=True)
class StaticPolicy:
    """Operator supplied BGP policy."""

    asn: int
    router_id_override: Optional[str] = None
    external_routers: Sequence[Router] = ()

    def routers_for(self, node_name: str) -> Sequence[Router]:
        """Return the routers ``node_name`` reflects to, in policy order."""

        return [r for r in self.external_routers if node_name in r.peer_node_names]

    def peer_asn(self, router: Router) -> int:
        return router.asn if router.asn is not None else self.asn
