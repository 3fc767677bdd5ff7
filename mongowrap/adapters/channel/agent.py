"""Agent server run on the execution host.

The agent:
1. Listens on a Unix socket or TCP address
2. Executes channel requests with a RequestHandler, one thread per connection
3. Kills any server processes it still owns when it shuts down
"""

import logging
import os
import signal
import socket
import threading
from pathlib import Path

from mongowrap.adapters.channel.client import parse_address
from mongowrap.adapters.channel.handlers import RequestHandler
from mongowrap.adapters.channel.protocol import (
    ERROR_BAD_REQUEST,
    ProtocolError,
    Request,
    Response,
    read_message,
    write_message,
)
from mongowrap.adapters.channel.timeouts import ChannelTimeouts

logger = logging.getLogger(__name__)

WILDCARD_HOSTS = frozenset({"", "0.0.0.0", "::"})


class AgentServer:
    """Execution-host agent."""

    def __init__(self, address: str, handler: RequestHandler | None = None):
        """Initialize agent.

        Args:
            address: Unix socket path or host:port to listen on
            handler: Request handler (default: one that may start no processes)

        Raises:
            ValueError: If address cannot be parsed
        """
        self.address = address
        self.family, self.bind_target = parse_address(address)
        self.handler = handler or RequestHandler()
        self.server_socket: socket.socket | None = None
        self.running = False
        self.requests_served = 0
        self._counter_lock = threading.Lock()

    @property
    def socket_path(self) -> Path | None:
        if self.family == getattr(socket, "AF_UNIX", None):
            return Path(self.bind_target)
        return None

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    def create_socket(self) -> None:
        """Create, bind and listen on the server socket."""
        socket_path = self.socket_path
        if socket_path is not None:
            if socket_path.exists():
                logger.warning(f"Removing stale socket: {socket_path}")
                socket_path.unlink()
            socket_path.parent.mkdir(parents=True, exist_ok=True)
        elif self.bind_target[0] in WILDCARD_HOSTS:
            logger.warning(
                f"Listening on all interfaces at {self.address}; "
                "the agent has no authentication, so restrict access to it"
            )

        self.server_socket = socket.socket(self.family, socket.SOCK_STREAM)
        if socket_path is None:
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.bind(self.bind_target)
        self.server_socket.listen(16)
        self.server_socket.settimeout(ChannelTimeouts.SERVER_ACCEPT)

        logger.info(f"Listening on {self.address}")

    def handle_client(self, client_socket: socket.socket) -> None:
        """Handle a single client connection.

        Args:
            client_socket: Connected client socket
        """
        try:
            request = read_message(client_socket, Request)
            logger.debug(f"Received request: {request.method}")

            with self._counter_lock:
                self.requests_served += 1

            response = self.handler.handle(request)

            write_message(client_socket, response)
            logger.debug(f"Sent response: {'error' if response.failed else 'success'}")

        except ProtocolError as e:
            logger.error(f"Protocol error: {e}")
            try:
                write_message(client_socket, Response.failure(code=ERROR_BAD_REQUEST, message=str(e)))
            except ProtocolError:
                logger.debug("Failed to send error response")
        finally:
            client_socket.close()

    def serve_forever(self) -> None:
        """Main server loop.

        Each connection is handled on its own thread, since a readiness
        probe can block for the whole start timeout.
        """
        logger.info(f"Agent started (PID {os.getpid()})")
        self.running = True

        while self.running:
            try:
                client_socket, _ = self.server_socket.accept()
            except TimeoutError:
                continue
            except OSError as e:
                if self.running:
                    logger.exception(f"Error accepting connection: {e}")
                break

            # Accepted sockets inherit the listening timeout; give requests their own.
            client_socket.settimeout(ChannelTimeouts.SOCKET_OPERATION)
            threading.Thread(
                target=self.handle_client,
                args=(client_socket,),
                name="agent-client",
                daemon=True,
            ).start()

        logger.info("Agent stopped")

    def stop(self) -> None:
        """Ask serve_forever to return after the current accept timeout."""
        self.running = False

    def cleanup(self) -> None:
        """Close the socket and kill processes still owned by the agent."""
        if self.server_socket:
            self.server_socket.close()

        socket_path = self.socket_path
        if socket_path is not None and socket_path.exists():
            socket_path.unlink()

        self.handler.shutdown()
        logger.info(f"Cleaned up agent at {self.address}")

    def run(self) -> None:
        """Run the agent until a shutdown signal arrives."""
        try:
            self.setup_signal_handlers()
            self.create_socket()
            self.serve_forever()
        finally:
            self.cleanup()
