"""Channel to the local host.

Requests go through the same handler table the agent uses, without a
socket in between.
"""

from typing import Any

from mongowrap.adapters.channel.base import BaseChannel
from mongowrap.adapters.channel.handlers import RequestHandler
from mongowrap.adapters.channel.protocol import Request
from mongowrap.domain.exceptions import RemoteExecutionError


class LocalChannel(BaseChannel):
    """Runs requests in this process."""

    def __init__(self, handler: RequestHandler | None = None):
        self.handler = handler or RequestHandler()

    def call(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        """Execute a request in-process.

        The timeout is accepted for interface parity and ignored; the probe
        bounds its own duration.

        Raises:
            RemoteExecutionError: If the handler reports an error
        """
        response = self.handler.handle(Request(method=method, params=params or {}))
        if response.failed:
            raise RemoteExecutionError(f"{method} failed: {response.error_message}")
        return response.result
