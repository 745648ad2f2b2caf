"""Lifecycle management for the dashboard daemon."""

import asyncio
import logging
import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass

from antfarm.config import AntfarmConfig
from antfarm.daemon.registry import ProcessRegistry, ProcessState
from antfarm.error_handling import DaemonStartError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaemonStatus:
    running: bool
    pid: int | None = None

    def as_dict(self) -> dict[str, object]:
        if not self.running:
            return {"running": False}
        return {"running": True, "pid": self.pid}


@dataclass(frozen=True)
class DaemonInfo:
    pid: int
    port: int


class DaemonSupervisor:
    """Starts, stops and reports on the dashboard daemon.

    The PID file is the only source of truth. The daemon writes it itself once
    its port is bound and removes it when it receives SIGTERM, so the
    supervisor never needs to keep a handle on the child.
    """

    def __init__(self, config: AntfarmConfig):
        self.config = config
        self.registry = ProcessRegistry(config.pid_file)

    def is_running(self) -> DaemonStatus:
        """Check the PID file, healing it when it no longer points at a live process."""
        result = self.registry.check()

        if result.state is ProcessState.RUNNING:
            return DaemonStatus(running=True, pid=result.pid)

        if result.state is ProcessState.STALE:
            if result.pid is None:
                logger.info("Removing malformed PID file %s", self.registry.pid_file)
            else:
                logger.info(
                    "Removing stale PID file %s (PID %s is gone)",
                    self.registry.pid_file,
                    result.pid,
                )
            self.registry.clear()

        return DaemonStatus(running=False)

    def get_daemon_status(self) -> DaemonStatus:
        """Report whether the daemon is running."""
        return self.is_running()

    def _command(self, port: int) -> list[str]:
        return [
            sys.executable,
            "-m",
            "antfarm.daemon.host",
            str(port),
            "--host",
            self.config.dashboard_host,
            "--pid-file",
            str(self.config.pid_file),
            "--db-path",
            str(self.config.db_path),
        ]

    def _spawn(self, port: int) -> None:
        log_file = self.config.log_file
        with open(log_file, "ab") as log:
            process = subprocess.Popen(
                self._command(port),
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                start_new_session=True,
                close_fds=True,
            )
        logger.debug("Spawned dashboard process %s", process.pid)

    async def start_daemon(self, port: int | None = None) -> DaemonInfo:
        """Start the daemon unless it is already running.

        Raises DaemonStartError when the child has not registered itself
        within ``daemon_start_timeout`` seconds.
        """
        port = port or self.config.dashboard_port

        status = self.is_running()
        if status.running:
            logger.info("Dashboard already running (PID %s)", status.pid)
            return DaemonInfo(pid=status.pid, port=port)

        self.config.ensure_directories()
        logger.info("Starting dashboard on port %s", port)
        logger.info("Log file: %s", self.config.log_file)
        self._spawn(port)

        deadline = time.monotonic() + self.config.daemon_start_timeout
        while True:
            await asyncio.sleep(self.config.daemon_poll_interval)
            status = self.is_running()
            if status.running:
                logger.info("Dashboard started (PID %s)", status.pid)
                return DaemonInfo(pid=status.pid, port=port)
            if time.monotonic() >= deadline:
                break

        raise DaemonStartError(self.config.log_file)

    def stop_daemon(self) -> bool:
        """Send SIGTERM to the daemon. Returns False if it was not running."""
        status = self.is_running()
        if not status.running:
            return False

        logger.info("Stopping dashboard (PID %s)", status.pid)
        try:
            os.kill(status.pid, signal.SIGTERM)
        except OSError as e:
            logger.debug("Could not signal PID %s: %s", status.pid, e)

        self.registry.clear()
        return True
