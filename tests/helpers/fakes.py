"""Test doubles for the execution host.

The supervisor only talks to the execution host through a channel and a
launcher. These fakes record every interaction so tests can assert on the
order of operations without starting mongod.
"""

from typing import Any

from mongowrap.core.build_log import BuildLog


class FakeProcess:
    """ProcessHandle double that records kill and flush calls."""

    def __init__(self, pid: int = 4242, alive: bool = True):
        self.pid = pid
        self.alive = alive
        self.kill_count = 0
        self.flush_count = 0
        self.kill_error: Exception | None = None

    def is_alive(self) -> bool:
        return self.alive

    def kill(self) -> None:
        self.kill_count += 1
        if self.kill_error is not None:
            raise self.kill_error
        self.alive = False

    def flush_output(self) -> None:
        self.flush_count += 1


class FakeLauncher:
    """ProcessLauncher double returning a preconfigured FakeProcess."""

    def __init__(self, process: FakeProcess | None = None, error: Exception | None = None):
        self.process = process or FakeProcess()
        self.error = error
        self.started: list[tuple[list[str], str | None]] = []

    def start(self, args: list[str], build_log: BuildLog, cwd: str | None = None) -> FakeProcess:
        self.started.append((list(args), cwd))
        if self.error is not None:
            raise self.error
        return self.process


class FakeChannel:
    """ExecutionChannel double with a POSIX-style filesystem."""

    def __init__(
        self,
        platform_name: str = "linux",
        ready: bool = True,
        probe_error: BaseException | None = None,
        prepare_error: Exception | None = None,
    ):
        self.platform_name = platform_name
        self.ready = ready
        self.probe_error = probe_error
        self.prepare_error = prepare_error
        self.events: list[tuple[str, Any]] = []

    def platform(self) -> str:
        return self.platform_name

    def is_absolute(self, path: str) -> bool:
        return path.startswith("/")

    def prepare_directory(self, path: str) -> None:
        self.events.append(("prepare_directory", path))
        if self.prepare_error is not None:
            raise self.prepare_error

    def probe_readiness(self, address: str, timeout_ms: int) -> bool:
        self.events.append(("probe_readiness", (address, timeout_ms)))
        if self.probe_error is not None:
            raise self.probe_error
        return self.ready

    def call(self, method: str, params: dict | None = None):
        self.events.append((method, params))
        return None


