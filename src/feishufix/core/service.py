"""Control of the OpenClaw gateway service through ``systemctl --user``.

The orchestrator only needs three capabilities, described by
:class:`ServiceController`. Tests substitute an in-memory fake.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable, Protocol

from feishufix.core.config import ServiceConfig
from feishufix.core.models import ServiceStatus

logger = logging.getLogger(__name__)


class ServiceController(Protocol):
    def query_status(self) -> ServiceStatus: ...

    def restart(self) -> bool: ...

    def exists(self) -> bool: ...


class SystemdUserService:
    """Talks to a systemd user unit."""

    def __init__(self, config: ServiceConfig | None = None) -> None:
        self.config = config or ServiceConfig()

    @property
    def name(self) -> str:
        return self.config.name

    def query_status(self) -> ServiceStatus:
        result = self._run("is-active", self.name)
        if result is None:
            return ServiceStatus(active=False, state="unknown")

        state = result.stdout.strip() or "inactive"
        active = state == "active"
        since = self._active_since() if active else None
        return ServiceStatus(active=active, state=state, since=since)

    def restart(self) -> bool:
        """Issue the restart. Readiness is polled separately."""
        logger.info("Restarting %s", self.name)
        result = self._run("restart", self.name)
        if result is None or result.returncode != 0:
            stderr = result.stderr.strip() if result is not None else ""
            logger.error("Restart of %s failed%s", self.name, f": {stderr}" if stderr else "")
            return False
        return True

    def exists(self) -> bool:
        # `systemctl status` exits 4 for an unknown unit and 3 for a stopped one.
        result = self._run("status", self.name)
        return result is not None and result.returncode in (0, 3)

    def _active_since(self) -> str | None:
        result = self._run("show", self.name, "--property=ActiveEnterTimestamp")
        if result is None or result.returncode != 0:
            return None
        _, _, value = result.stdout.strip().partition("=")
        return value.strip() or None

    def _run(self, *args: str) -> subprocess.CompletedProcess | None:
        try:
            return subprocess.run(
                ["systemctl", "--user", *args],
                capture_output=True, text=True, timeout=self.config.command_timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("systemctl %s failed: %s", " ".join(args), exc)
            return None


def wait_until_active(
    service: ServiceController,
    timeout: float = 30.0,
    interval: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll until the service reports active. Gives up after ``timeout`` seconds."""
    deadline = clock() + timeout
    while True:
        if service.query_status().active:
            return True
        if clock() >= deadline:
            return False
        sleep(interval)
