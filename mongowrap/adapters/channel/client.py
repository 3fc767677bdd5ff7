"""Socket channel to a mongowrap agent.

The agent is addressed either by a Unix socket path or by host:port.
"""

import contextlib
import logging
import socket
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from mongowrap.adapters.channel.base import BaseChannel
from mongowrap.adapters.channel.protocol import (
    ProtocolError,
    Request,
    Response,
    read_message,
    write_message,
)
from mongowrap.adapters.channel.timeouts import ChannelTimeouts
from mongowrap.domain.exceptions import RemoteExecutionError

logger = logging.getLogger(__name__)


def parse_address(address: str) -> tuple[socket.AddressFamily, Any]:
    """Parse an agent address.

    Args:
        address: Unix socket path (contains "/") or "host:port"

    Returns:
        (address family, socket address) suitable for socket.connect/bind

    Raises:
        ValueError: If address is neither a path nor host:port
    """
    if "/" in address:
        if not hasattr(socket, "AF_UNIX"):
            raise ValueError("Unix socket addresses are not supported on this platform")
        return socket.AF_UNIX, address

    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit() or int(port) > 65535:
        raise ValueError(f"Invalid agent address {address!r}; expected host:port or a socket path")
    return socket.AF_INET, (host, int(port))


@contextmanager
def channel_connection(
    address: str,
    timeout: float = ChannelTimeouts.SOCKET_OPERATION,
) -> Iterator[socket.socket]:
    """Context manager for agent socket connections.

    Args:
        address: Agent address (socket path or host:port)
        timeout: Socket operation timeout in seconds

    Yields:
        Connected socket ready for communication.

    Raises:
        ConnectionRefusedError: If the agent is not accepting connections.
        FileNotFoundError: If the socket file doesn't exist.
        TimeoutError: If connection times out.
        OSError: For other socket-related errors.
    """
    family, target = parse_address(address)
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(target)
        yield sock
    finally:
        with contextlib.suppress(OSError):
            sock.close()


class SocketChannel(BaseChannel):
    """Runs requests on a remote host through its agent."""

    def __init__(self, address: str, timeout: float = ChannelTimeouts.SOCKET_OPERATION):
        """Initialize channel.

        Args:
            address: Agent address (socket path or host:port)
            timeout: Default socket timeout for requests

        Raises:
            ValueError: If address cannot be parsed
        """
        parse_address(address)
        self.address = address
        self.timeout = timeout
        self._next_id = 1

    def call(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        """Send one request and wait for its response.

        Raises:
            RemoteExecutionError: On transport failure or an error response
        """
        request = Request(method=method, params=params or {}, id=self._next_id)
        self._next_id += 1

        try:
            with channel_connection(self.address, timeout=timeout or self.timeout) as sock:
                write_message(sock, request)
                response = read_message(sock, Response)
        except (ProtocolError, OSError) as e:
            raise RemoteExecutionError(
                f"Agent at {self.address} unreachable during {method}: {e}",
                hint="Check that 'mongowrap agent' is running on the execution host",
            ) from e

        if response.failed:
            raise RemoteExecutionError(f"{method} failed on {self.address}: {response.error_message}")

        if response.id != request.id:
            logger.warning(f"Response id {response.id} does not match request id {request.id}")

        return response.result
