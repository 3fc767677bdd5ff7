"""Port interface for the execution-host channel.

The channel runs a small, closed set of requests on the machine that owns
the filesystem and network the server process uses. That machine may be the
local host or a remote worker running the mongowrap agent.
"""

from typing import Protocol


class ExecutionChannel(Protocol):
    """Protocol for running requests on the execution host.

    Every method propagates a failure on the execution host as
    RemoteExecutionError. Nothing is retried.
    """

    def platform(self) -> str:
        """Lower-cased platform.system() of the execution host."""
        ...

    def is_absolute(self, path: str) -> bool:
        """Check whether path is absolute on the execution host's filesystem."""
        ...

    def prepare_directory(self, path: str) -> None:
        """Delete path recursively if it exists, then recreate it empty."""
        ...

    def probe_readiness(self, address: str, timeout_ms: int) -> bool:
        """Run the readiness probe from the execution host's network.

        Args:
            address: host:port of the server
            timeout_ms: Server selection timeout (0 = probe default)

        Returns:
            True if the server answered a round trip in time
        """
        ...

    def call(self, method: str, params: dict | None = None):
        """Send a raw request and return its result.

        Used by adapters that drive processes on the execution host.
        """
        ...
