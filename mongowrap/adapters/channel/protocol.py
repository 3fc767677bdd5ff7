"""Wire format for the execution-host channel.

Each connection carries one request and one response, each a single line
of UTF-8 JSON. The method set is closed: an agent answers anything outside
METHODS with ERROR_UNKNOWN_METHOD, so a controller can only ask for the
operations listed here.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

HEALTH = "health"
CHECK_ABSOLUTE_PATH = "check_absolute_path"
PREPARE_DIRECTORY = "prepare_directory"
PROBE_READINESS = "probe_readiness"
START_PROCESS = "start_process"
PROCESS_ALIVE = "process_alive"
KILL_PROCESS = "kill_process"
PROCESS_OUTPUT = "process_output"

METHODS = frozenset({
    HEALTH,
    CHECK_ABSOLUTE_PATH,
    PREPARE_DIRECTORY,
    PROBE_READINESS,
    START_PROCESS,
    PROCESS_ALIVE,
    KILL_PROCESS,
    PROCESS_OUTPUT,
})

ERROR_BAD_REQUEST = 400
ERROR_UNKNOWN_METHOD = 404
ERROR_INTERNAL = 500

MAX_MESSAGE_BYTES = 4 * 1024 * 1024
"""Longest line accepted from a peer, newline included."""


class ProtocolError(Exception):
    """A message could not be sent, received or decoded."""

    pass


def _decode_object(line: bytes | str, kind: str) -> dict[str, Any]:
    try:
        data = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError(f"{kind} must be a JSON object")
    return data


@dataclass
class Request:
    """A call of one channel method."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: int = 1

    def encode(self) -> bytes:
        return (json.dumps(asdict(self)) + "\n").encode("utf-8")

    @classmethod
    def decode(cls, line: bytes | str) -> "Request":
        """Parse one request line.

        Raises:
            ProtocolError: If the line is not a well-formed request
        """
        data = _decode_object(line, "Request")
        method = data.get("method")
        if not isinstance(method, str):
            raise ProtocolError("Request missing 'method' field")
        params = data.get("params", {})
        if not isinstance(params, dict):
            raise ProtocolError("Request 'params' must be a JSON object")
        return cls(method=method, params=params, id=data.get("id", 1))


@dataclass
class Response:
    """Outcome of a request: a result, or an error with code and message."""

    result: Any = None
    error: dict[str, Any] | None = None
    id: int = 1

    @classmethod
    def success(cls, result: Any, request_id: int = 1) -> "Response":
        return cls(result=result, id=request_id)

    @classmethod
    def failure(cls, code: int, message: str, request_id: int = 1) -> "Response":
        return cls(error={"code": code, "message": message}, id=request_id)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        return str(self.error.get("message", "Unknown error"))

    def encode(self) -> bytes:
        return (json.dumps(asdict(self)) + "\n").encode("utf-8")

    @classmethod
    def decode(cls, line: bytes | str) -> "Response":
        """Parse one response line.

        Raises:
            ProtocolError: If the line is not a JSON object
        """
        data = _decode_object(line, "Response")
        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            error = {"code": ERROR_INTERNAL, "message": str(error)}
        return cls(result=data.get("result"), error=error, id=data.get("id", 1))


def write_message(sock, message: Request | Response) -> None:
    """Send one message.

    Raises:
        ProtocolError: If the socket fails
    """
    try:
        sock.sendall(message.encode())
    except OSError as e:
        raise ProtocolError(f"Failed to send message: {e}") from e


def read_message(sock, kind: type[Request] | type[Response]) -> Request | Response:
    """Read one message line from sock and decode it as kind.

    Raises:
        ProtocolError: If the peer hangs up, times out, or sends a bad line
    """
    try:
        with sock.makefile("rb") as reader:
            line = reader.readline(MAX_MESSAGE_BYTES)
    except OSError as e:
        raise ProtocolError(f"Failed to receive message: {e}") from e

    if not line:
        raise ProtocolError("Connection closed")
    if not line.endswith(b"\n"):
        if len(line) >= MAX_MESSAGE_BYTES:
            raise ProtocolError(f"Message exceeds {MAX_MESSAGE_BYTES} bytes")
        raise ProtocolError("Connection closed before end of message")
    return kind.decode(line)
