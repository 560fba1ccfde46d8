"""GoBGP configuration document builder.

The document is assembled as an ordered list of typed sections and only then
serialised to TOML, so output order is exactly the order sections were added.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional


class PeerKind(Enum):
    """Distinguishes plain mesh peers from reflector eBGP peers."""

    INTERNAL = "internal"
    EXTERNAL = "external"


def _quote(value: str) -> str:
    # JSON string escapes are valid TOML basic-string escapes.
    return json.dumps(value, ensure_ascii=False)


@dataclass(frozen=True)
class GlobalSection:
    router_id: str
    asn: int

    def lines(self) -> Iterable[str]:
        return [
            "[global.config]",
            f"  as = {self.asn}",
            f"  router-id = {_quote(self.router_id)}",
        ]


@dataclass(frozen=True)
class NeighborSection:
    """A ``[[neighbors]]`` table."""

    address: str
    peer_asn: int
    kind: PeerKind
    label: str
    route_reflector_client: bool = False
    cluster_id: Optional[str] = None

    @property
    def reflected(self) -> bool:
        return self.kind is PeerKind.EXTERNAL

    @property
    def description(self) -> str:
        return f"{self.kind.value}:{self.label}"

    def lines(self) -> Iterable[str]:
        lines = [
            "[[neighbors]]",
            "  [neighbors.config]",
            f"    neighbor-address = {_quote(self.address)}",
            f"    peer-as = {self.peer_asn}",
            f"    description = {_quote(self.description)}",
        ]
        if self.route_reflector_client:
            lines.append("  [neighbors.route-reflector.config]")
            lines.append("    route-reflector-client = true")
            if self.cluster_id:
                lines.append(
                    f"    route-reflector-cluster-id = {_quote(self.cluster_id)}"
                )
        return lines


@dataclass
class GoBGPDocument:
    global_section: GlobalSection
    neighbors: List[NeighborSection] = field(default_factory=list)

    def add_internal_peer(self, node_name: str, address: str) -> NeighborSection:
        section = NeighborSection(
            address=address,
            peer_asn=self.global_section.asn,
            kind=PeerKind.INTERNAL,
            label=node_name,
        )
        self.neighbors.append(section)
        return section

    def add_reflected_peer(self, address: str, peer_asn: int) -> NeighborSection:
        """Add a router that mesh routes are reflected to.

        An eBGP session passes iBGP-learned routes on by itself.  A router in
        the cluster's own AS needs to be a route-reflector client for that.
        """

        same_as = peer_asn == self.global_section.asn
        section = NeighborSection(
            address=address,
            peer_asn=peer_asn,
            kind=PeerKind.EXTERNAL,
            label="reflected",
            route_reflector_client=same_as,
            cluster_id=self.global_section.router_id if same_as else None,
        )
        self.neighbors.append(section)
        return section

    def render(self) -> str:
        blocks = ["\n".join(self.global_section.lines())]
        blocks.extend("\n".join(n.lines()) for n in self.neighbors)
        return "\n\n".join(blocks) + "\n"
