"""Write the synthesized configuration to disk.

The exporter mirrors what the agent needs from a "driver": take the latest
snapshot, synthesize, and persist the artifact for GoBGP to pick up.  Writes
are skipped when the rendered text matches what is already on disk so the
daemon is not reloaded for no reason.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import ClusterSnapshot, StaticPolicy
from .synthesizer import RenderedConfig, synthesize

LOG = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Result of an export operation."""

    config_text: str
    output_path: Path
    changed: bool


class ConfigExporter:
    """Render the GoBGP configuration for one node and persist it."""

    def __init__(self, policy: StaticPolicy, output_path: Path) -> None:
        self._policy = policy
        self._output_path = Path(output_path)
        self._last_render: Optional[RenderedConfig] = None

    @property
    def output_path(self) -> Path:
        return self._output_path

    def export(self, node_name: str, snapshot: ClusterSnapshot) -> ExportResult:
        """Synthesize and write the config.

        :class:`~kube_bgp.synthesizer.SynthesisError` propagates unchanged and
        leaves the existing file untouched.
        """

        rendered = synthesize(node_name, snapshot, self._policy)
        self._last_render = rendered

        if self._current_text() == rendered.text:
            LOG.debug("GoBGP config at %s already up to date", self._output_path)
            return ExportResult(rendered.text, self._output_path, changed=False)

        self._write(rendered.text)
        LOG.info(
            "Rendered GoBGP config to %s (%d internal, %d external peers)",
            self._output_path,
            len(rendered.internal_peers),
            len(rendered.external_peers),
        )
        return ExportResult(rendered.text, self._output_path, changed=True)

    def get_rendered_config(self) -> Optional[str]:
        if self._last_render:
            return self._last_render.text
        return None

    def _current_text(self) -> Optional[str]:
        try:
            return self._output_path.read_text()
        except FileNotFoundError:
            return None

    def _write(self, text: str) -> None:
        directory = self._output_path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._output_path.name}.", dir=directory
        )
        try:
            with os.fdopen(fd, "w") as fh:
                fh.write(text)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, self._output_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
