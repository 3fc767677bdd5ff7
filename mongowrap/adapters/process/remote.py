"""Process launching through the mongowrap agent on a remote host.

The agent holds the child's output until it is read. A drain thread polls
for it while the task runs, so the build log follows the server live and
the agent's buffer never fills up.
"""

import logging
import threading
from typing import Any

from mongowrap.adapters.channel.protocol import (
    KILL_PROCESS,
    PROCESS_ALIVE,
    PROCESS_OUTPUT,
    START_PROCESS,
)
from mongowrap.core.build_log import BuildLog
from mongowrap.domain.exceptions import LaunchFailure, RemoteExecutionError
from mongowrap.ports.channel import ExecutionChannel

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0
"""Seconds between output polls while the process runs."""


class RemoteProcessHandle:
    """Proxy for a process owned by the agent."""

    def __init__(
        self,
        channel: ExecutionChannel,
        pid: int,
        build_log: BuildLog,
        poll_interval: float = POLL_INTERVAL,
    ):
        self._channel = channel
        self._pid = pid
        self._build_log = build_log
        self.poll_interval = poll_interval
        self._cursor = 0
        # Set once the agent has handed over the last line and dropped the pid.
        self._finished = False
        self._fetch_lock = threading.Lock()
        self._stop = threading.Event()
        self._drain: threading.Thread | None = None

    @property
    def pid(self) -> int:
        return self._pid

    def start_draining(self) -> None:
        """Poll the agent for output in the background until stopped."""
        self._drain = threading.Thread(
            target=self._drain_loop,
            name=f"remote-output-{self._pid}",
            daemon=True,
        )
        self._drain.start()

    def _drain_loop(self) -> None:
        while not self._stop.wait(self.poll_interval):
            if not self._fetch():
                return

    def _stop_draining(self) -> None:
        self._stop.set()
        if self._drain is not None and self._drain is not threading.current_thread():
            self._drain.join(timeout=self.poll_interval + 1.0)

    def _record(self, result: dict[str, Any]) -> None:
        for line in result.get("lines", []):
            self._build_log.write_raw(line)
        self._cursor = result.get("cursor", self._cursor)
        if result.get("done"):
            self._finished = True

    def _fetch(self) -> bool:
        """Copy newly buffered output into the build log.

        Returns:
            False once there is nothing more to fetch
        """
        with self._fetch_lock:
            if self._finished:
                return False
            try:
                result = self._channel.call(
                    PROCESS_OUTPUT, {"pid": self._pid, "cursor": self._cursor}
                )
            except RemoteExecutionError as e:
                logger.warning(f"Could not fetch output of remote process {self._pid}: {e}")
                return True
            self._record(result)
            return not self._finished

    def is_alive(self) -> bool:
        if self._finished:
            return False
        return bool(self._channel.call(PROCESS_ALIVE, {"pid": self._pid}))

    def kill(self) -> None:
        """Kill the process and collect the output it left behind."""
        self._stop_draining()
        with self._fetch_lock:
            if self._finished:
                return
            result = self._channel.call(
                KILL_PROCESS, {"pid": self._pid, "cursor": self._cursor}
            )
            self._record(result or {})
            self._finished = True

    def flush_output(self) -> None:
        """Fetch output now rather than waiting for the next poll."""
        self._fetch()
        if self._finished:
            self._stop_draining()


class RemoteProcessLauncher:
    """Starts processes on the execution host via its agent."""

    def __init__(self, channel: ExecutionChannel, poll_interval: float = POLL_INTERVAL):
        self.channel = channel
        self.poll_interval = poll_interval

    def start(self, args: list[str], build_log: BuildLog, cwd: str | None = None) -> RemoteProcessHandle:
        """Ask the agent to start a process and begin draining its output.

        Raises:
            LaunchFailure: If the agent cannot start the process
        """
        try:
            result = self.channel.call(START_PROCESS, {"args": args, "cwd": cwd})
        except RemoteExecutionError as e:
            raise LaunchFailure(
                f"Failed to start {args[0] if args else 'process'} on execution host: {e.message}",
                hint="Check that the executable is on the agent's --executable allowlist",
            ) from e

        pid = int(result["pid"])
        logger.debug(f"Agent started PID {pid}")
        handle = RemoteProcessHandle(self.channel, pid, build_log, poll_interval=self.poll_interval)
        handle.start_draining()
        return handle
