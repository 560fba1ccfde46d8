"""YAML policy loader and runtime settings for the kube-bgp agent."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence

import yaml

from kube_bgp.config import Router, StaticPolicy

MAX_ASN = 4294967295

DEFAULT_POLICY_PATH = Path("/etc/kube-bgp/kube-bgp.yaml")
DEFAULT_OUTPUT_PATH = Path("/etc/gobgp/gobgp.conf")
DEFAULT_NOTIFY_COMMAND: Sequence[str] = ("pkill", "-HUP", "-x", "gobgpd")


@dataclass
class AgentSettings:
    node_name: str
    policy_path: Path = DEFAULT_POLICY_PATH
    output_path: Path = DEFAULT_OUTPUT_PATH
    kubeconfig: Optional[Path] = None
    max_wait: float = 60.0
    notify_command: Sequence[str] = DEFAULT_NOTIFY_COMMAND


def _parse_asn(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"'{field_name}' must be an AS number")
    try:
        asn = int(str(value).strip())
    except ValueError:
        raise ValueError(f"'{field_name}' must be an AS number, got {value!r}") from None
    if not 1 <= asn <= MAX_ASN:
        raise ValueError(f"'{field_name}' out of range: {asn}")
    return asn


def _parse_router(index: int, entry: Any) -> Router:
    if not isinstance(entry, dict):
        raise ValueError(f"routers[{index}] must be a mapping")
    if "address" not in entry:
        raise ValueError(f"routers[{index}] missing 'address'")
    try:
        address = str(ipaddress.ip_address(str(entry["address"]).strip()))
    except ValueError:
        raise ValueError(
            f"routers[{index}].address is not an IP address: {entry['address']!r}"
        ) from None

    asn_raw = entry.get("asn")
    asn = None
    if asn_raw not in (None, ""):
        asn = _parse_asn(asn_raw, f"routers[{index}].asn")

    peers = entry.get("peerNodes") or []
    if not isinstance(peers, list):
        raise ValueError(f"routers[{index}].peerNodes must be a list")

    return Router(
        address=address,
        asn=asn,
        peer_node_names=frozenset(str(p) for p in peers),
    )


def parse_policy(data: Any) -> StaticPolicy:
    if not isinstance(data, dict):
        raise ValueError("Policy document must be a mapping")
    if data.get("asn") in (None, ""):
        raise ValueError("Policy missing 'asn'")
    asn = _parse_asn(data["asn"], "asn")

    router_id = data.get("routerID")
    if router_id:
        try:
            router_id = str(ipaddress.IPv4Address(str(router_id).strip()))
        except ValueError:
            raise ValueError(f"'routerID' must be an IPv4 address, got {router_id!r}") from None
    else:
        router_id = None

    routers_section = data.get("routers") or []
    if not isinstance(routers_section, list):
        raise ValueError("'routers' section must be a list")
    routers: List[Router] = [
        _parse_router(i, entry) for i, entry in enumerate(routers_section)
    ]

    return StaticPolicy(
        asn=asn,
        router_id_override=router_id,
        external_routers=tuple(routers),
    )


def load_policy(path: Path) -> StaticPolicy:
    data = yaml.safe_load(Path(path).read_text())
    return parse_policy(data)
