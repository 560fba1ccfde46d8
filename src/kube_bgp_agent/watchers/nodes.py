"""Resilient cluster Node watcher.

The watcher never trusts watch payloads.  Any activity on the stream, or the
maximum wait elapsing, only triggers a full re-list which is then diffed
against the cached snapshot.  Consumers are woken through a single-slot
:class:`ChangeSignal` and must re-read :meth:`ClusterWatcher.snapshot`.
"""

from __future__ import annotations

import logging
import queue
import time
from enum import Enum
from threading import Event, Thread
from typing import Optional, Sequence

from kube_bgp.config import ClusterSnapshot, Node

from .base import NodeSource

LOG = logging.getLogger(__name__)

DEFAULT_MAX_WAIT = 60.0
DEFAULT_RETRY_INTERVAL = 1.0


class WatcherState(Enum):
    IDLE = "idle"
    WATCHING = "watching"
    LISTING = "listing"
    DIFFING = "diffing"
    SIGNALING = "signaling"
    BACKOFF = "backoff"
    STOPPED = "stopped"


def diff_snapshots(old: ClusterSnapshot, new: ClusterSnapshot) -> bool:
    """Return ``True`` if membership or any node's address set differs."""

    if len(old) != len(new):
        return True

    for node in new:
        previous = old.get(node.name)
        if previous is None:
            return True
        if previous.addresses != node.addresses:
            return True

    return False


class ChangeSignal:
    """Coalescing "something changed" notification with a single slot."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[None]" = queue.Queue(maxsize=1)

    def notify(self) -> bool:
        """Queue a wake-up without blocking; returns ``False`` if one was already pending."""

        try:
            self._queue.put_nowait(None)
        except queue.Full:
            return False
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Consume a pending notification, waiting up to ``timeout`` seconds."""

        try:
            self._queue.get(timeout=timeout)
        except queue.Empty:
            return False
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class ClusterWatcher(Thread):
    """Track the cluster's Nodes and signal when they materially change."""

    def __init__(
        self,
        source: NodeSource,
        *,
        max_wait: float = DEFAULT_MAX_WAIT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        stop_event: Optional[Event] = None,
    ) -> None:
        super().__init__(name="cluster-watcher", daemon=True)
        self._source = source
        self._max_wait = max_wait
        self._retry_interval = retry_interval
        self._stop_event = stop_event or Event()
        self._wake = Event()
        self._signal = ChangeSignal()
        self._snapshot = ClusterSnapshot()
        self._pending: Optional[ClusterSnapshot] = None
        self._after_backoff = WatcherState.LISTING
        self._initial_state = WatcherState.LISTING
        self.state = WatcherState.IDLE
        self.ready = Event()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start(self) -> None:
        """List once synchronously, then run the watch loop in the background."""

        try:
            self._commit(self._list())
            LOG.info("initial node list contains %d nodes", len(self._snapshot))
            self._initial_state = WatcherState.IDLE
        except Exception as exc:
            LOG.warning("initial node list failed, will keep retrying: %s", exc)
            self._initial_state = WatcherState.LISTING
        super().start()

    def snapshot(self) -> ClusterSnapshot:
        return self._snapshot

    def changes(self) -> ChangeSignal:
        return self._signal

    def close(self) -> None:
        self._stop_event.set()
        self._wake.set()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    def run(self) -> None:
        LOG.info(
            "Starting cluster watcher (max_wait=%ss, retry=%ss)",
            self._max_wait,
            self._retry_interval,
        )
        self.state = self._initial_state
        while not self._stop_event.is_set():
            try:
                self.state = self.step(self.state)
            except Exception:  # pragma: no cover - logged below
                LOG.exception("cluster watcher encountered an error")
                self._after_backoff = WatcherState.IDLE
                self.state = WatcherState.BACKOFF
        self.state = WatcherState.STOPPED
        LOG.info("Stopping cluster watcher")

    def step(self, state: WatcherState) -> WatcherState:
        """Run one transition and return the next state."""

        handler = {
            WatcherState.IDLE: self._open_and_watch,
            WatcherState.LISTING: self._relist,
            WatcherState.DIFFING: self._diff,
            WatcherState.SIGNALING: self._publish,
            WatcherState.BACKOFF: self._backoff,
        }.get(state)
        if handler is None:
            raise ValueError(f"no transition out of state {state}")
        return handler()

    def _open_and_watch(self) -> WatcherState:
        self._wake.clear()
        try:
            watch = self._source.watch(self._wake.set, self._max_wait)
        except Exception as exc:
            LOG.warning("failed to open node watch: %s", exc)
            self._after_backoff = WatcherState.LISTING
            return WatcherState.BACKOFF

        self.state = WatcherState.WATCHING
        try:
            self._wait_for_wake()
        finally:
            watch.stop()
        return WatcherState.LISTING

    def _wait_for_wake(self) -> None:
        deadline = time.monotonic() + self._max_wait
        while not self._stop_event.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LOG.debug("no node events for %ss; forcing a re-list", self._max_wait)
                return
            if self._wake.wait(min(remaining, 1.0)):
                return

    def _relist(self) -> WatcherState:
        try:
            self._pending = self._list()
        except Exception as exc:
            LOG.warning("failed to obtain list of nodes: %s", exc)
            self._after_backoff = WatcherState.LISTING
            return WatcherState.BACKOFF
        return WatcherState.DIFFING

    def _diff(self) -> WatcherState:
        if self._pending is not None and (
            not self.ready.is_set() or diff_snapshots(self._snapshot, self._pending)
        ):
            return WatcherState.SIGNALING
        self._pending = None
        return WatcherState.IDLE

    def _publish(self) -> WatcherState:
        if self._pending is None:
            return WatcherState.IDLE
        self._commit(self._pending)
        self._pending = None
        LOG.info("node set changed: %s", ", ".join(self._snapshot.names()) or "<empty>")
        if not self._signal.notify():
            LOG.debug("change notification already pending; coalesced")
        return WatcherState.IDLE

    def _backoff(self) -> WatcherState:
        self._stop_event.wait(self._retry_interval)
        return self._after_backoff

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _list(self) -> ClusterSnapshot:
        nodes: Sequence[Node] = self._source.list_nodes()
        return ClusterSnapshot(nodes)

    def _commit(self, snapshot: ClusterSnapshot) -> None:
        self._snapshot = snapshot
        self.ready.set()
