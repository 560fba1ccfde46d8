"""kube-bgp agent runtime helpers."""

from .config import AgentSettings, load_policy  # noqa: F401

__all__ = [
    "AgentSettings",
    "load_policy",
]
