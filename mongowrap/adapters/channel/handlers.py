"""Request execution on the execution host.

RequestHandler owns everything that must happen on the machine running
mongod: filesystem checks, data directory reset, the readiness probe, and
the processes it started on behalf of a remote controller.
"""

import logging
import os
import platform
import shutil
import threading
from collections.abc import Callable, Iterable
from typing import Any

from mongowrap.adapters.channel.protocol import (
    CHECK_ABSOLUTE_PATH,
    ERROR_BAD_REQUEST,
    ERROR_INTERNAL,
    ERROR_UNKNOWN_METHOD,
    HEALTH,
    KILL_PROCESS,
    METHODS,
    PREPARE_DIRECTORY,
    PROBE_READINESS,
    PROCESS_ALIVE,
    PROCESS_OUTPUT,
    START_PROCESS,
    Request,
    Response,
)
from mongowrap.adapters.process.local import LocalProcessHandle, LocalProcessLauncher
from mongowrap.adapters.process.output import BufferedOutput
from mongowrap.adapters.readiness.mongo import MongoReadinessProbe
from mongowrap.domain.exceptions import MongowrapDomainError

logger = logging.getLogger(__name__)


class BadRequestError(ValueError):
    """Raised by a handler when request params are missing or invalid."""

    pass


def _require(params: dict[str, Any], name: str, kind: type) -> Any:
    value = params.get(name)
    if not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool):
        raise BadRequestError(f"Missing or invalid '{name}' parameter")
    return value


def _cursor(params: dict[str, Any]) -> int:
    cursor = params.get("cursor", 0)
    if not isinstance(cursor, int) or isinstance(cursor, bool) or cursor < 0:
        raise BadRequestError("Invalid 'cursor' parameter")
    return cursor


def reset_directory(path: str) -> None:
    """Delete path recursively if it exists, then create it empty."""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)
    os.makedirs(path, exist_ok=True)


def normalize_executable(path: str) -> str:
    """Canonical spelling of an executable path for allowlist checks."""
    return os.path.normcase(os.path.normpath(path))


class RequestHandler:
    """Executes channel requests on this host.

    start_process only runs executables on the allowlist. A handler built
    without one refuses every start_process request; the in-process channel
    launches through LocalProcessLauncher directly and never needs it.

    A started process stays in the table until it has been killed, or has
    exited and its output has been read to the end.
    """

    def __init__(
        self,
        probe: MongoReadinessProbe | None = None,
        launcher: LocalProcessLauncher | None = None,
        executables: Iterable[str] = (),
    ):
        """Initialize handler.

        Args:
            probe: Readiness probe (default: MongoReadinessProbe)
            launcher: Launcher for start_process (default: LocalProcessLauncher)
            executables: Executables start_process may run
        """
        self.probe = probe or MongoReadinessProbe()
        self.launcher = launcher or LocalProcessLauncher()
        self.executables = frozenset(normalize_executable(e) for e in executables)
        self._processes: dict[int, tuple[LocalProcessHandle, BufferedOutput]] = {}
        self._lock = threading.Lock()
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            HEALTH: self._handle_health,
            CHECK_ABSOLUTE_PATH: self._handle_check_absolute_path,
            PREPARE_DIRECTORY: self._handle_prepare_directory,
            PROBE_READINESS: self._handle_probe_readiness,
            START_PROCESS: self._handle_start_process,
            PROCESS_ALIVE: self._handle_process_alive,
            KILL_PROCESS: self._handle_kill_process,
            PROCESS_OUTPUT: self._handle_process_output,
        }

    @property
    def process_count(self) -> int:
        with self._lock:
            return len(self._processes)

    def handle(self, request: Request) -> Response:
        """Handle a single request.

        Args:
            request: Request to handle

        Returns:
            Response with result or error
        """
        if request.method not in METHODS:
            return Response.failure(
                code=ERROR_UNKNOWN_METHOD,
                message=f"Unknown method: {request.method}",
                request_id=request.id,
            )

        try:
            result = self._handlers[request.method](request.params)
        except BadRequestError as e:
            logger.warning(f"Rejected {request.method}: {e}")
            return Response.failure(
                code=ERROR_BAD_REQUEST, message=str(e), request_id=request.id
            )
        except MongowrapDomainError as e:
            logger.warning(f"{request.method} failed: {e.message}")
            return Response.failure(
                code=ERROR_INTERNAL, message=e.message, request_id=request.id
            )
        except Exception as e:
            logger.exception(f"Error handling {request.method}")
            return Response.failure(
                code=ERROR_INTERNAL,
                message=f"{type(e).__name__}: {e}",
                request_id=request.id,
            )

        return Response.success(result, request_id=request.id)

    def shutdown(self) -> None:
        """Kill every process this handler started that is still running."""
        with self._lock:
            processes = list(self._processes.items())
            self._processes.clear()

        for pid, (process, output) in processes:
            output.close()
            if process.is_alive():
                logger.info(f"Killing orphaned process {pid}")
                process.kill()

    def _lookup(self, params: dict[str, Any]) -> tuple[int, tuple[LocalProcessHandle, BufferedOutput] | None]:
        pid = _require(params, "pid", int)
        with self._lock:
            return pid, self._processes.get(pid)

    def _get_process(self, params: dict[str, Any]) -> tuple[int, LocalProcessHandle, BufferedOutput]:
        pid, entry = self._lookup(params)
        if entry is None:
            raise BadRequestError(f"Unknown process: {pid}")
        return pid, entry[0], entry[1]

    def _forget(self, pid: int) -> None:
        with self._lock:
            self._processes.pop(pid, None)
        logger.debug(f"Released process {pid}")

    def _handle_health(self, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "status": "ok",
            "pid": os.getpid(),
            "platform": platform.system().lower(),
        }

    def _handle_check_absolute_path(self, params: dict[str, Any]) -> bool:
        return os.path.isabs(_require(params, "path", str))

    def _handle_prepare_directory(self, params: dict[str, Any]) -> None:
        path = _require(params, "path", str)
        if not path:
            raise BadRequestError("Refusing to reset an empty path")
        reset_directory(path)

    def _handle_probe_readiness(self, params: dict[str, Any]) -> bool:
        address = _require(params, "address", str)
        timeout_ms = params.get("timeout_ms", 0)
        if not isinstance(timeout_ms, int) or timeout_ms < 0:
            raise BadRequestError("Invalid 'timeout_ms' parameter")
        return self.probe.await_ready(address, timeout_ms)

    def _handle_start_process(self, params: dict[str, Any]) -> dict[str, int]:
        args = _require(params, "args", list)
        if not args or not all(isinstance(a, str) for a in args):
            raise BadRequestError("'args' must be a non-empty list of strings")
        if normalize_executable(args[0]) not in self.executables:
            raise BadRequestError(f"Executable not allowed on this agent: {args[0]}")
        cwd = params.get("cwd")
        if cwd is not None and not isinstance(cwd, str):
            raise BadRequestError("Invalid 'cwd' parameter")

        output = BufferedOutput()
        process = self.launcher.start(args, output, cwd=cwd)
        with self._lock:
            self._processes[process.pid] = (process, output)
        logger.info(f"Started {args[0]} with PID {process.pid}")
        return {"pid": process.pid}

    def _handle_process_alive(self, params: dict[str, Any]) -> bool:
        # A pid no longer in the table has exited and been read to the end.
        _, entry = self._lookup(params)
        return entry is not None and entry[0].is_alive()

    def _handle_kill_process(self, params: dict[str, Any]) -> dict[str, Any]:
        """Kill the process and return its remaining output."""
        pid, process, output = self._get_process(params)
        cursor = _cursor(params)
        logger.info(f"Killing process {pid}")
        process.kill()
        output.close()
        process.flush_output()
        lines, next_cursor = output.read_since(cursor)
        self._forget(pid)
        return {"lines": lines, "cursor": next_cursor, "done": True}

    def _handle_process_output(self, params: dict[str, Any]) -> dict[str, Any]:
        pid, process, output = self._get_process(params)
        cursor = _cursor(params)
        done = False
        if not process.is_alive():
            output.close()
            process.flush_output()
            done = process.output_finished()
        lines, next_cursor = output.read_since(cursor)
        if done:
            self._forget(pid)
        return {"lines": lines, "cursor": next_cursor, "done": done}
