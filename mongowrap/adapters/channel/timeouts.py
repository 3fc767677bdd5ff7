"""Centralized timeout configuration for channel operations.

All values are in seconds unless otherwise noted.
"""

from mongowrap.domain.config import DEFAULT_START_TIMEOUT_MS


class ChannelTimeouts:
    """Timeouts for talking to the execution host.

    Groups:
        SOCKET_*: Client socket operation timeouts
        PROBE_*: Readiness probe timeouts
        SERVER_*: Agent-side timeouts
    """

    SOCKET_OPERATION: float = 10.0
    """Timeout for ordinary requests (path checks, directory reset, process control).

    Directory reset deletes a whole data directory, which can take a few
    seconds for a large previous run.
    """

    PROBE_OVERHEAD: float = 5.0
    """Extra time allowed on top of the probe's own timeout.

    The agent answers probe_readiness only after the probe finishes, so the
    client socket must wait for the probe timeout plus connection and
    serialization overhead.
    """

    HEALTH_CHECK: float = 2.0
    """Timeout for health requests used to discover the host platform."""

    SERVER_ACCEPT: float = 1.0
    """Timeout for agent accept() calls so shutdown signals are noticed."""

    @classmethod
    def for_probe(cls, timeout_ms: int) -> float:
        """Socket timeout for a probe_readiness request.

        Args:
            timeout_ms: Probe timeout in milliseconds (0 = probe default)

        Returns:
            Seconds to wait for the agent's answer
        """
        effective_ms = timeout_ms if timeout_ms > 0 else DEFAULT_START_TIMEOUT_MS
        return effective_ms / 1000.0 + cls.PROBE_OVERHEAD
