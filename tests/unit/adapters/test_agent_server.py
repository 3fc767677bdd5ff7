"""Unit tests for the agent server."""

import socket
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mongowrap.adapters.channel.agent import AgentServer
from mongowrap.adapters.channel.protocol import ERROR_BAD_REQUEST, ProtocolError, Request, Response


@pytest.fixture
def handler() -> MagicMock:
    mock = MagicMock()
    mock.handle.return_value = Response.success({"status": "ok"})
    return mock


class TestAgentServerInit:
    """Tests for AgentServer construction."""

    def test_tcp_address(self, handler: MagicMock) -> None:
        server = AgentServer("127.0.0.1:7077", handler=handler)

        assert server.family == socket.AF_INET
        assert server.bind_target == ("127.0.0.1", 7077)
        assert server.socket_path is None

    @pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="Unix sockets unavailable")
    def test_unix_address(self, handler: MagicMock, tmp_path: Path) -> None:
        server = AgentServer(str(tmp_path / "agent.sock"), handler=handler)

        assert server.socket_path == tmp_path / "agent.sock"

    def test_invalid_address(self, handler: MagicMock) -> None:
        with pytest.raises(ValueError):
            AgentServer("nowhere", handler=handler)


class TestHandleClient:
    """Tests for AgentServer.handle_client()."""

    def test_dispatches_request_and_replies(self, handler: MagicMock) -> None:
        server = AgentServer("127.0.0.1:7077", handler=handler)
        client = MagicMock()
        request = Request("health")

        with patch(
            "mongowrap.adapters.channel.agent.read_message", return_value=request
        ), patch("mongowrap.adapters.channel.agent.write_message") as send:
            server.handle_client(client)

        handler.handle.assert_called_once_with(request)
        send.assert_called_once_with(client, handler.handle.return_value)
        client.close.assert_called_once()
        assert server.requests_served == 1

    def test_protocol_error_answers_bad_request(self, handler: MagicMock) -> None:
        server = AgentServer("127.0.0.1:7077", handler=handler)
        client = MagicMock()

        with patch(
            "mongowrap.adapters.channel.agent.read_message",
            side_effect=ProtocolError("Invalid JSON"),
        ), patch("mongowrap.adapters.channel.agent.write_message") as send:
            server.handle_client(client)

        handler.handle.assert_not_called()
        response = send.call_args[0][1]
        assert response.error["code"] == ERROR_BAD_REQUEST
        client.close.assert_called_once()


class TestLifecycle:
    """Tests for socket setup and cleanup."""

    @pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="Unix sockets unavailable")
    def test_stale_socket_removed(self, handler: MagicMock, tmp_path: Path) -> None:
        socket_path = tmp_path / "agent.sock"
        socket_path.write_text("stale")
        server = AgentServer(str(socket_path), handler=handler)

        try:
            server.create_socket()
            assert socket_path.exists()
        finally:
            server.cleanup()

        assert not socket_path.exists()

    def test_wildcard_listen_warns(self, handler: MagicMock, caplog) -> None:
        server = AgentServer("0.0.0.0:0", handler=handler)

        try:
            with caplog.at_level("WARNING"):
                server.create_socket()
        finally:
            server.cleanup()

        assert "no authentication" in caplog.text

    def test_loopback_listen_does_not_warn(self, handler: MagicMock, caplog) -> None:
        server = AgentServer("127.0.0.1:0", handler=handler)

        try:
            with caplog.at_level("WARNING"):
                server.create_socket()
        finally:
            server.cleanup()

        assert "no authentication" not in caplog.text

    def test_cleanup_shuts_down_handler(self, handler: MagicMock) -> None:
        """Test that processes owned by the agent are killed on shutdown."""
        server = AgentServer("127.0.0.1:7077", handler=handler)
        server.server_socket = MagicMock()

        server.cleanup()

        server.server_socket.close.assert_called_once()
        handler.shutdown.assert_called_once()

    def test_stop_clears_running(self, handler: MagicMock) -> None:
        server = AgentServer("127.0.0.1:7077", handler=handler)
        server.running = True

        server.stop()

        assert server.running is False
