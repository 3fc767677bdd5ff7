"""Process launching on the local host.

The child's stdout and stderr are merged and pumped line by line into the
build log by a daemon thread. Nothing is parsed.
"""

import contextlib
import logging
import subprocess
import threading
from typing import TextIO

from mongowrap.core.build_log import BuildLog
from mongowrap.domain.exceptions import LaunchFailure

logger = logging.getLogger(__name__)

KILL_WAIT = 2.5
"""Seconds to wait for the OS to reap a killed process."""

PUMP_JOIN_WAIT = 1.0
"""Seconds to wait for the output pump to drain after the process exits."""


def _pump_output(stream: TextIO, build_log: BuildLog) -> None:
    """Copy lines from the child's output pipe until EOF."""
    try:
        for line in stream:
            build_log.write_raw(line)
    except (OSError, ValueError):
        # Pipe closed underneath us while the process was being killed
        logger.debug("Output pipe closed")
    finally:
        with contextlib.suppress(OSError):
            stream.close()


class LocalProcessHandle:
    """Handle to a process started by LocalProcessLauncher."""

    def __init__(self, process: subprocess.Popen, pump: threading.Thread | None = None):
        self._process = process
        self._pump = pump

    @property
    def pid(self) -> int:
        return self._process.pid

    def is_alive(self) -> bool:
        """Check if the process has not exited yet (reaps it if it has)."""
        return self._process.poll() is None

    def kill(self) -> None:
        """Send SIGKILL and wait briefly for the OS to reap the process."""
        with contextlib.suppress(ProcessLookupError):
            self._process.kill()
        try:
            self._process.wait(timeout=KILL_WAIT)
        except subprocess.TimeoutExpired:
            logger.error(f"Process {self.pid} survived SIGKILL after {KILL_WAIT}s")

    def flush_output(self) -> None:
        """Let the pump finish writing once the process has exited.

        Output of a running process is streamed live, so there is nothing
        to do until it exits.
        """
        if self._pump is not None and not self.is_alive():
            self._pump.join(timeout=PUMP_JOIN_WAIT)

    def output_finished(self) -> bool:
        """Whether every line the child wrote has reached the build log."""
        return self._pump is None or not self._pump.is_alive()


class LocalProcessLauncher:
    """Starts processes on this machine."""

    def start(self, args: list[str], build_log: BuildLog, cwd: str | None = None) -> LocalProcessHandle:
        """Start a process and attach its output to the build log.

        Args:
            args: Full command line, executable first
            build_log: Sink for the child's output
            cwd: Working directory

        Returns:
            Handle to the running process

        Raises:
            LaunchFailure: If the executable is missing or cannot be executed
        """
        if not args:
            raise LaunchFailure("Empty command line")

        try:
            process = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                cwd=cwd,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            # FileNotFoundError, PermissionError, bad cwd
            raise LaunchFailure(
                f"Failed to start {args[0]}: {e}",
                hint="Check the installation's executable path and that it is executable",
            ) from e

        pump = threading.Thread(
            target=_pump_output,
            args=(process.stdout, build_log),
            name=f"output-{process.pid}",
            daemon=True,
        )
        pump.start()

        logger.debug(f"Started {args[0]} with PID {process.pid}")
        return LocalProcessHandle(process, pump)
