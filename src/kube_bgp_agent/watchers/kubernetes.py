"""Kubernetes API backed Node source."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Event, Thread
from typing import Any, Callable, Optional, Sequence

from kubernetes import client
from kubernetes import config as k8s_config

from kube_bgp.config import Node

from .base import NodeSource, NodeWatch
from .utils import node_from_kubernetes

LOG = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0
# Added to the server-side watch timeout to bound reads on a half-open connection.
READ_TIMEOUT_MARGIN = 10.0
READER_JOIN_TIMEOUT = 1.0


class _StreamWatch(NodeWatch):
    """Read a raw watch response on a daemon thread and report activity."""

    def __init__(self, response: Any, on_event: Callable[[], None]) -> None:
        self._response = response
        self._on_event = on_event
        self._stopped = Event()
        self._reader = Thread(target=self._read, name="node-watch-reader", daemon=True)
        self._reader.start()

    def _read(self) -> None:
        try:
            for chunk in self._response.stream(decode_content=True):
                if chunk:
                    LOG.debug("node watch event received")
                    break
            else:
                LOG.debug("node watch stream closed by the API server")
        except Exception as exc:  # stream torn down underneath us
            if self._stopped.is_set():
                return
            LOG.warning("node watch stream failed: %s", exc)
        if not self._stopped.is_set():
            self._on_event()

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        try:
            self._response.close()
            self._response.release_conn()
        except Exception:  # pragma: no cover - best effort teardown
            LOG.debug("error closing node watch stream", exc_info=True)
        self._reader.join(READER_JOIN_TIMEOUT)
        if self._reader.is_alive():
            LOG.warning("node watch reader did not exit within %ss", READER_JOIN_TIMEOUT)


class KubernetesNodeSource(NodeSource):
    """List and watch ``v1.Node`` objects through ``CoreV1Api``."""

    def __init__(self, api: client.CoreV1Api, request_timeout: float = 30.0) -> None:
        self._api = api
        self._request_timeout = request_timeout
        self._resource_version: Optional[str] = None

    def list_nodes(self) -> Sequence[Node]:
        result = self._api.list_node(_request_timeout=self._request_timeout)
        # Watching from this version skips the ADDED replay of existing Nodes.
        metadata = result.metadata
        self._resource_version = metadata.resource_version if metadata else None
        return [node_from_kubernetes(item) for item in result.items]

    def watch(self, on_event: Callable[[], None], timeout: float) -> NodeWatch:
        server_timeout = max(1, int(timeout))
        kwargs = {}
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version
        response = self._api.list_node(
            watch=True,
            timeout_seconds=server_timeout,
            _preload_content=False,
            _request_timeout=(CONNECT_TIMEOUT, server_timeout + READ_TIMEOUT_MARGIN),
            **kwargs,
        )
        return _StreamWatch(response, on_event)


def create_kubernetes_source(kubeconfig: Optional[Path] = None) -> KubernetesNodeSource:
    """Build a source from in-cluster credentials, or ``kubeconfig`` if given.

    Raises :class:`kubernetes.config.ConfigException` when no credentials can
    be loaded.
    """

    if kubeconfig is not None:
        k8s_config.load_kube_config(config_file=str(kubeconfig))
    else:
        k8s_config.load_incluster_config()
    return KubernetesNodeSource(client.CoreV1Api())
