"""Port interfaces for launching the server process."""

from typing import Protocol

from mongowrap.core.build_log import BuildLog


class ProcessHandle(Protocol):
    """Live reference to a started process."""

    @property
    def pid(self) -> int:
        """OS process id on the execution host."""
        ...

    def is_alive(self) -> bool:
        """Check whether the process is still running."""
        ...

    def kill(self) -> None:
        """Forcibly terminate the process."""
        ...

    def flush_output(self) -> None:
        """Forward any output not yet written to the build log."""
        ...


class ProcessLauncher(Protocol):
    """Protocol for starting a process on the execution host."""

    def start(self, args: list[str], build_log: BuildLog, cwd: str | None = None) -> ProcessHandle:
        """Start a process without waiting for it to become ready.

        Args:
            args: Full command line, executable first
            build_log: Sink for the child's stdout/stderr
            cwd: Working directory on the execution host

        Returns:
            Handle to the running process

        Raises:
            LaunchFailure: If the executable cannot be started
        """
        ...
