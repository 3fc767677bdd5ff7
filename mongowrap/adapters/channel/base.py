"""Typed operations shared by all channel implementations."""

from typing import Any

from mongowrap.adapters.channel.protocol import (
    CHECK_ABSOLUTE_PATH,
    HEALTH,
    PREPARE_DIRECTORY,
    PROBE_READINESS,
)
from mongowrap.adapters.channel.timeouts import ChannelTimeouts


class BaseChannel:
    """Maps ExecutionChannel operations onto raw requests.

    Subclasses implement call().
    """

    def call(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        raise NotImplementedError

    def health(self) -> dict[str, Any]:
        return self.call(HEALTH, timeout=ChannelTimeouts.HEALTH_CHECK)

    def platform(self) -> str:
        return str(self.health()["platform"])

    def is_absolute(self, path: str) -> bool:
        return bool(self.call(CHECK_ABSOLUTE_PATH, {"path": path}))

    def prepare_directory(self, path: str) -> None:
        self.call(PREPARE_DIRECTORY, {"path": path})

    def probe_readiness(self, address: str, timeout_ms: int) -> bool:
        return bool(
            self.call(
                PROBE_READINESS,
                {"address": address, "timeout_ms": timeout_ms},
                timeout=ChannelTimeouts.for_probe(timeout_ms),
            )
        )
