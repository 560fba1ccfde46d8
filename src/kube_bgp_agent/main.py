"""Entry point for the kube-bgp agent."""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import signal
import sys
from pathlib import Path
from threading import Event
from typing import Callable

import yaml
from kubernetes.config import ConfigException

from kube_bgp.exporter import ConfigExporter
from kube_bgp.synthesizer import SynthesisError

from .config import (
    DEFAULT_NOTIFY_COMMAND,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_POLICY_PATH,
    AgentSettings,
    load_policy,
)
from .notify import CommandNotifier
from .watchers import ClusterWatcher, create_kubernetes_source

LOG = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Maintain a GoBGP configuration from the cluster's Nodes"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_POLICY_PATH,
        help="Path to the static BGP policy file",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_PATH,
        help="Path of the GoBGP configuration file to write",
    )
    parser.add_argument(
        "--node-name",
        default=os.environ.get("NODE_NAME", ""),
        help="Name of the local Node (defaults to $NODE_NAME)",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Use this kubeconfig instead of in-cluster credentials",
    )
    parser.add_argument(
        "--max-wait",
        type=float,
        default=60.0,
        help="Maximum seconds between forced node re-lists",
    )
    parser.add_argument(
        "--notify-command",
        default=shlex.join(DEFAULT_NOTIFY_COMMAND),
        help="Command run after the config changes to make gobgpd reload it",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def reconcile(
    settings: AgentSettings,
    watcher: ClusterWatcher,
    exporter: ConfigExporter,
    notifier: Callable[[], bool],
    *,
    force_notify: bool = False,
) -> bool:
    """Export the config for the current snapshot; returns ``False`` if the cycle was skipped."""

    try:
        result = exporter.export(settings.node_name, watcher.snapshot())
    except SynthesisError as exc:
        LOG.error(
            "failed to export config for node %s [%s]: %s; keeping the current config",
            exc.node_name,
            exc.reason,
            exc,
        )
        return False
    except OSError:
        LOG.exception("failed to write config to %s", exporter.output_path)
        return False

    if result.changed or force_notify:
        notifier()
    return True


def run(
    settings: AgentSettings,
    watcher: ClusterWatcher,
    exporter: ConfigExporter,
    notifier: Callable[[], bool],
    stop_event: Event,
    *,
    poll_interval: float = 1.0,
) -> None:
    """Export once, then again on every change signal until ``stop_event`` is set."""

    exported = False
    if watcher.ready.is_set():
        exported = reconcile(settings, watcher, exporter, notifier, force_notify=True)
    else:
        LOG.info("waiting for the first node list before exporting")

    changes = watcher.changes()
    while not stop_event.is_set():
        if not changes.wait(poll_interval):
            continue
        if stop_event.is_set():
            break
        ok = reconcile(
            settings, watcher, exporter, notifier, force_notify=not exported
        )
        exported = exported or ok


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    if not args.node_name:
        LOG.error("NODE_NAME must be set (or pass --node-name)")
        return 1

    settings = AgentSettings(
        node_name=args.node_name,
        policy_path=args.config,
        output_path=args.output,
        kubeconfig=args.kubeconfig,
        max_wait=args.max_wait,
        notify_command=shlex.split(args.notify_command),
    )

    try:
        policy = load_policy(settings.policy_path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        LOG.error("failed to read configuration %s: %s", settings.policy_path, exc)
        return 1

    try:
        source = create_kubernetes_source(settings.kubeconfig)
    except ConfigException as exc:
        LOG.error("failed to acquire kubernetes config: %s", exc)
        return 1

    stop_event = Event()
    watcher = ClusterWatcher(
        source, max_wait=settings.max_wait, stop_event=stop_event
    )
    exporter = ConfigExporter(policy, settings.output_path)
    notifier = CommandNotifier(settings.notify_command)

    def _shutdown(signum, frame):  # pragma: no cover - signal handler
        LOG.info("received signal %s, shutting down", signum)
        watcher.close()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    watcher.start()
    try:
        run(settings, watcher, exporter, notifier, stop_event)
    except KeyboardInterrupt:  # pragma: no cover - fallback if signal not set
        watcher.close()

    watcher.join(timeout=5.0)
    LOG.info("kube-bgp agent stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
