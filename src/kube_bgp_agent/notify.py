"""Best-effort GoBGP reload notification."""

from __future__ import annotations

import logging
import subprocess
from typing import Sequence

LOG = logging.getLogger(__name__)


class CommandNotifier:
    """Ask GoBGP to reload by running a command (``SIGHUP`` by default).

    Failures are expected while gobgpd is still starting, so they are logged
    and reported through the return value only.
    """

    def __init__(self, command: Sequence[str]) -> None:
        self._command = list(command)

    def __call__(self) -> bool:
        return self.notify()

    def notify(self) -> bool:
        if not self._command:
            LOG.debug("no notify command configured")
            return False

        LOG.debug("Executing: %s", " ".join(self._command))
        try:
            result = subprocess.run(
                self._command, check=False, text=True, capture_output=True
            )
        except OSError as exc:
            LOG.warning("failed to notify gobgp of updated config: %s", exc)
            return False

        if result.returncode != 0:
            LOG.warning(
                "failed to notify gobgp of updated config (exit %s): %s",
                result.returncode,
                result.stderr.strip() or result.stdout.strip(),
            )
            return False

        LOG.info("notified gobgp of updated config")
        return True
