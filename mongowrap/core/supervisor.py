"""Supervision of a single MongoDB server for the duration of a task.

The supervisor prepares the data directory, launches mongod on the
execution host, gates on a readiness probe and hands the caller a scoped
handle whose release kills the server. Readiness is advisory: a failed or
erroring probe is logged, and the caller still receives a handle so the
launched process is always torn down.

Typical use:

    supervisor = ServiceSupervisor(channel, launcher, build_log)
    with supervisor.start(config, installation, workspace) as handle:
        run_task()
"""

import logging
from enum import Enum
from types import TracebackType

from mongowrap.core.arguments import LaunchCommand, build_arguments
from mongowrap.core.build_log import BuildLog
from mongowrap.domain.config import Installation, ServiceConfig
from mongowrap.domain.exceptions import (
    ConfigurationError,
    RemoteExecutionError,
    SetupFailure,
)
from mongowrap.ports.channel import ExecutionChannel
from mongowrap.ports.launcher import ProcessHandle, ProcessLauncher

logger = logging.getLogger(__name__)


class SupervisorState(str, Enum):
    IDLE = "idle"
    DIRECTORY_PREPARED = "directory_prepared"
    LAUNCHED = "launched"
    GATE_EVALUATED = "gate_evaluated"
    HANDED_OFF = "handed_off"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


class ScopedServiceHandle:
    """Caller-owned reference to the running server.

    Release it exactly once when the protected task finishes, on every exit
    path. Using the handle as a context manager does that automatically.

    Attributes:
        process: Handle to the mongod process
        data_directory: Resolved data directory on the execution host
        ready: Whether the readiness probe succeeded
    """

    def __init__(
        self,
        process: ProcessHandle,
        data_directory: str,
        build_log: BuildLog,
        on_release=None,
    ):
        self.process = process
        self.data_directory = data_directory
        self.ready = False
        self._build_log = build_log
        self._on_release = on_release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Kill the server if it is still alive.

        A second call is a no-op.
        """
        if self._released:
            logger.debug("Handle for pid %s already released", self.process.pid)
            return
        self._released = True

        try:
            if self.process.is_alive():
                self._build_log.log("Killing mongodb process...")
                self.process.kill()
            else:
                self._build_log.log("Will not kill mongodb process as it is already dead.")
        except (OSError, RemoteExecutionError) as e:
            logger.warning(f"Failed to kill mongod (PID {self.process.pid}): {e}")
            self._build_log.log(f"ERROR: Failed to kill mongodb process: {e}")
        finally:
            self.process.flush_output()
            if self._on_release is not None:
                self._on_release()

    def __enter__(self) -> "ScopedServiceHandle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class ServiceSupervisor:
    """Runs one mongod per invocation on the execution host."""

    def __init__(
        self,
        channel: ExecutionChannel,
        launcher: ProcessLauncher,
        build_log: BuildLog,
    ):
        """Initialize supervisor.

        Args:
            channel: Channel to the execution host
            launcher: Starts processes on the execution host
            build_log: Sink for supervisory messages and server output
        """
        self.channel = channel
        self.launcher = launcher
        self.build_log = build_log
        self.state = SupervisorState.IDLE

    def build_command(
        self,
        config: ServiceConfig,
        installation: Installation,
        workspace: str,
    ) -> LaunchCommand:
        """Resolve the executable and assemble the command line.

        Raises:
            ConfigurationError: If no workspace is given or the installation
                               has no executable for the host platform
            RemoteExecutionError: If the execution host cannot be queried
        """
        if not workspace:
            raise ConfigurationError(
                "No workspace available",
                hint="Pass --workspace or run from the task's working directory",
            )

        executable = installation.executable_for(self.channel.platform())
        return build_arguments(
            config,
            installation,
            executable=executable,
            workspace=workspace,
            is_absolute=self.channel.is_absolute,
        )

    def prepare_directory(self, data_directory: str) -> None:
        """Reset the data directory to an empty directory.

        Raises:
            SetupFailure: If the directory cannot be cleared or created
        """
        try:
            self.channel.prepare_directory(data_directory)
        except RemoteExecutionError as e:
            self.state = SupervisorState.FAILED
            raise SetupFailure(
                f"Cannot prepare data directory {data_directory}: {e.message}",
                hint="Check permissions on the data directory and that no other mongod is using it",
            ) from e
        self.state = SupervisorState.DIRECTORY_PREPARED

    def launch(self, command: LaunchCommand, workspace: str) -> ProcessHandle:
        """Start mongod without waiting for it to accept connections.

        Raises:
            LaunchFailure: If the process cannot be created
        """
        self.build_log.log(f"Executing mongodb start command: {command.args}")
        try:
            process = self.launcher.start(command.args, self.build_log, cwd=workspace)
        except Exception:
            self.state = SupervisorState.FAILED
            raise
        self.state = SupervisorState.LAUNCHED
        logger.info(f"Started mongod with PID {process.pid}")
        return process

    def await_ready(
        self,
        config: ServiceConfig,
        installation: Installation,
        process: ProcessHandle,
    ) -> bool:
        """Run the readiness gate on the execution host.

        Never raises for probe problems: a clean failure and an error while
        probing are both logged and reported as False.
        """
        address = config.probe_address(installation)
        timeout_ms = config.effective_start_timeout(installation)

        self.build_log.log(f"Waiting for server at {address}...")
        try:
            ready = self.channel.probe_readiness(address, timeout_ms)
        except Exception as e:
            logger.exception("Readiness check raised")
            self.build_log.log(f"ERROR: Readiness check failed: {e}")
            ready = False
        finally:
            process.flush_output()

        if ready:
            self.build_log.log(f"Server ready at {address}")
        else:
            self.build_log.log("ERROR: Failed to start mongodb")

        self.state = SupervisorState.GATE_EVALUATED
        return ready

    def start(
        self,
        config: ServiceConfig,
        installation: Installation,
        workspace: str,
    ) -> ScopedServiceHandle:
        """Launch mongod and return a handle that tears it down.

        Args:
            config: Invocation-level settings
            installation: Installation to launch
            workspace: Workspace root on the execution host

        Returns:
            Handle for the launched server; check ``handle.ready`` for the
            readiness outcome

        Raises:
            ConfigurationError: No workspace or executable could be resolved
            SetupFailure: The data directory could not be prepared
            LaunchFailure: The process could not be started
        """
        command = self.build_command(config, installation, workspace)
        self.prepare_directory(command.data_directory)
        process = self.launch(command, workspace)

        handle = ScopedServiceHandle(
            process,
            command.data_directory,
            self.build_log,
            on_release=self._torn_down,
        )
        try:
            handle.ready = self.await_ready(config, installation, process)
        except BaseException:
            # Interrupted while waiting; the caller never receives the handle.
            handle.release()
            raise

        self.state = SupervisorState.HANDED_OFF
        return handle

    def _torn_down(self) -> None:
        self.state = SupervisorState.TORN_DOWN
