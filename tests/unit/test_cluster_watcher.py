import time
from threading import Event

from kube_bgp.config import AddressType, ClusterSnapshot, Node, NodeAddress
from kube_bgp_agent.watchers import ChangeSignal, ClusterWatcher, NodeSource, NodeWatch, WatcherState, diff_snapshots


def node(name: str, *ips: str) -> Node:
    return Node(
        name=name,
        addresses=frozenset(NodeAddress(AddressType.INTERNAL_IP, ip) for ip in ips),
    )


class RecordingWatch(NodeWatch):
    def __init__(self):
        self.stopped = Event()

    def stop(self) -> None:
        self.stopped.set()


class FakeSource(NodeSource):
    def __init__(self, nodes):
        self.nodes = list(nodes)
        self.list_calls = 0
        self.list_failures = 0
        self.watch_failures = 0
        self.fire_immediately = False
        self.watches: list[RecordingWatch] = []
        self.on_event = None

    def list_nodes(self):
        self.list_calls += 1
        if self.list_failures:
            self.list_failures -= 1
            raise ConnectionError("api server unavailable")
        return list(self.nodes)

    def watch(self, on_event, timeout):
        if self.watch_failures:
            self.watch_failures -= 1
            raise ConnectionError("watch refused")
        self.on_event = on_event
        handle = RecordingWatch()
        self.watches.append(handle)
        if self.fire_immediately:
            on_event()
        return handle

    def fire(self):
        assert self.on_event is not None
        self.on_event()


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_diff_detects_added_node():
    old = ClusterSnapshot([node("a", "10.0.0.1")])
    new = ClusterSnapshot([node("a", "10.0.0.1"), node("b", "10.0.0.2")])

    assert diff_snapshots(old, new)


def test_diff_detects_removed_node():
    old = ClusterSnapshot([node("a", "10.0.0.1"), node("b", "10.0.0.2")])
    new = ClusterSnapshot([node("a", "10.0.0.1")])

    assert diff_snapshots(old, new)


def test_diff_detects_replaced_node_with_same_count():
    old = ClusterSnapshot([node("a", "10.0.0.1"), node("b", "10.0.0.2")])
    new = ClusterSnapshot([node("a", "10.0.0.1"), node("c", "10.0.0.2")])

    assert diff_snapshots(old, new)


def test_diff_detects_address_change():
    old = ClusterSnapshot([node("a", "10.0.0.1", "fd00::1"), node("b", "10.0.0.2")])
    new = ClusterSnapshot([node("a", "10.0.0.9", "fd00::1"), node("b", "10.0.0.2")])

    assert diff_snapshots(old, new)


def test_diff_ignores_ordering():
    old = ClusterSnapshot([node("a", "10.0.0.1", "fd00::1"), node("b", "10.0.0.2")])
    new = ClusterSnapshot([node("b", "10.0.0.2"), node("a", "fd00::1", "10.0.0.1")])

    assert not diff_snapshots(old, new)


def test_change_signal_coalesces():
    signal = ChangeSignal()

    results = [signal.notify() for _ in range(10)]

    assert results == [True] + [False] * 9
    assert signal.pending == 1
    assert signal.wait(0)
    assert signal.pending == 0
    assert not signal.wait(0)


def test_rapid_replacements_leave_one_pending_notification():
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source, retry_interval=0.01)

    for i in range(2, 12):
        source.nodes = [node("a", f"10.0.0.{i}")]
        assert watcher.step(WatcherState.LISTING) is WatcherState.DIFFING
        assert watcher.step(WatcherState.DIFFING) is WatcherState.SIGNALING
        assert watcher.step(WatcherState.SIGNALING) is WatcherState.IDLE
        assert watcher.changes().pending == 1

    assert watcher.snapshot().get("a").addresses == node("a", "10.0.0.11").addresses


def test_unchanged_list_does_not_signal():
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source)
    watcher.step(WatcherState.LISTING)
    watcher.step(WatcherState.DIFFING)
    watcher.step(WatcherState.SIGNALING)
    assert watcher.changes().wait(0)

    assert watcher.step(WatcherState.LISTING) is WatcherState.DIFFING
    assert watcher.step(WatcherState.DIFFING) is WatcherState.IDLE
    assert watcher.changes().pending == 0


def test_watch_event_triggers_relist():
    source = FakeSource([node("a", "10.0.0.1")])
    source.fire_immediately = True
    watcher = ClusterWatcher(source, max_wait=30.0)

    assert watcher.step(WatcherState.IDLE) is WatcherState.LISTING
    assert source.watches[0].stopped.is_set()


def test_max_wait_forces_relist():
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source, max_wait=0.05)

    started = time.monotonic()
    assert watcher.step(WatcherState.IDLE) is WatcherState.LISTING
    assert time.monotonic() - started >= 0.04
    assert source.watches[0].stopped.is_set()


def test_watch_open_failure_backs_off_then_lists():
    source = FakeSource([node("a", "10.0.0.1")])
    source.watch_failures = 1
    watcher = ClusterWatcher(source, retry_interval=0.05)

    assert watcher.step(WatcherState.IDLE) is WatcherState.BACKOFF
    started = time.monotonic()
    assert watcher.step(WatcherState.BACKOFF) is WatcherState.LISTING
    assert time.monotonic() - started >= 0.04


def test_list_failure_backs_off_and_retries_list():
    source = FakeSource([node("a", "10.0.0.1")])
    source.list_failures = 1
    watcher = ClusterWatcher(source, retry_interval=0.01)

    assert watcher.step(WatcherState.LISTING) is WatcherState.BACKOFF
    assert watcher.step(WatcherState.BACKOFF) is WatcherState.LISTING
    assert watcher.step(WatcherState.LISTING) is WatcherState.DIFFING


def test_duplicate_names_are_treated_as_list_failure():
    source = FakeSource([node("a", "10.0.0.1"), node("a", "10.0.0.2")])
    watcher = ClusterWatcher(source, retry_interval=0.01)

    assert watcher.step(WatcherState.LISTING) is WatcherState.BACKOFF


def test_watcher_thread_signals_changes():
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source, max_wait=30.0, retry_interval=0.01)

    watcher.start()
    try:
        assert watcher.ready.is_set()
        assert watcher.snapshot().names() == ["a"]
        assert watcher.changes().pending == 0

        assert wait_until(lambda: source.on_event is not None)
        source.nodes = [node("a", "10.0.0.1"), node("b", "10.0.0.2")]
        source.fire()

        assert watcher.changes().wait(2.0)
        assert watcher.snapshot().names() == ["a", "b"]
    finally:
        watcher.close()
        watcher.join(2.0)

    assert not watcher.is_alive()
    assert watcher.state is WatcherState.STOPPED


def test_watcher_retries_failed_initial_list():
    source = FakeSource([node("a", "10.0.0.1")])
    source.list_failures = 2
    watcher = ClusterWatcher(source, max_wait=30.0, retry_interval=0.01)

    watcher.start()
    try:
        assert watcher.changes().wait(2.0)
        assert watcher.ready.is_set()
        assert watcher.snapshot().names() == ["a"]
    finally:
        watcher.close()
        watcher.join(2.0)


def test_close_interrupts_watch_wait():
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source, max_wait=60.0)

    watcher.start()
    assert wait_until(lambda: watcher.state is WatcherState.WATCHING)
    started = time.monotonic()
    watcher.close()
    watcher.join(2.0)

    assert not watcher.is_alive()
    assert time.monotonic() - started < 2.0
    assert source.watches[-1].stopped.is_set()


def test_external_stop_event_is_observed():
    stop_event = Event()
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source, max_wait=60.0, stop_event=stop_event)

    watcher.start()
    assert wait_until(lambda: watcher.state is WatcherState.WATCHING)
    stop_event.set()
    watcher.join(3.0)

    assert not watcher.is_alive()


def test_publish_without_pending_list_returns_to_idle():
    source = FakeSource([node("a", "10.0.0.1")])
    watcher = ClusterWatcher(source)

    assert watcher.step(WatcherState.SIGNALING) is WatcherState.IDLE
    assert watcher.changes().pending == 0
    assert not watcher.ready.is_set()
