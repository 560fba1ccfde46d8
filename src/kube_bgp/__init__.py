"""kube-bgp configuration synthesis.

This package turns a point-in-time view of the cluster's Nodes plus a small
static policy into a GoBGP configuration for the local node.  Every node is
kept in an iBGP full mesh with every other node; nodes listed against an
external router additionally peer with that router over eBGP and reflect the
internal routes towards it.

The modules here are pure-Python and free of any Kubernetes or network
dependency so they can be exercised directly in unit tests:

* :mod:`kube_bgp.config` holds the immutable data model;
* :mod:`kube_bgp.addresses` resolves peering addresses and router-IDs;
* :mod:`kube_bgp.gobgp` builds and serialises the GoBGP TOML document;
* :mod:`kube_bgp.synthesizer` combines the above into the rendered config; and
* :mod:`kube_bgp.exporter` writes the artifact without needless churn.
"""

from .config import ClusterSnapshot, Node, NodeAddress, Router, StaticPolicy  # noqa: F401
from .exporter import ConfigExporter, ExportResult  # noqa: F401
from .synthesizer import MissingRouterIDError, SynthesisError, synthesize  # noqa: F401

__all__ = [
    "ClusterSnapshot",
    "ConfigExporter",
    "ExportResult",
    "MissingRouterIDError",
    "Node",
    "NodeAddress",
    "Router",
    "StaticPolicy",
    "SynthesisError",
    "synthesize",
]
