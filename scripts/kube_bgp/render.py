#!/usr/bin/env python3
"""Render the GoBGP configuration for one node from a saved node list."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from kube_bgp.config import ClusterSnapshot  # noqa: E402
from kube_bgp.exporter import ConfigExporter  # noqa: E402
from kube_bgp.synthesizer import SynthesisError, synthesize  # noqa: E402
from kube_bgp_agent.config import load_policy  # noqa: E402
from kube_bgp_agent.watchers import StaticNodeSource  # noqa: E402


LOG = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--nodes",
        type=Path,
        required=True,
        help="Node list as produced by 'kubectl get nodes -o json'",
    )
    parser.add_argument(
        "--policy",
        type=Path,
        default=Path("deploy/kube-bgp.yaml"),
        help="Path to the static BGP policy file",
    )
    parser.add_argument(
        "--node-name",
        required=True,
        help="Node to render the configuration for",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the config here instead of printing it",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    policy = load_policy(args.policy)
    snapshot = ClusterSnapshot(StaticNodeSource.from_file(args.nodes).list_nodes())
    LOG.info("Loaded %d nodes from %s", len(snapshot), args.nodes)

    try:
        if args.output:
            ConfigExporter(policy, args.output).export(args.node_name, snapshot)
        else:
            sys.stdout.write(synthesize(args.node_name, snapshot, policy).text)
    except SynthesisError as exc:
        LOG.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
