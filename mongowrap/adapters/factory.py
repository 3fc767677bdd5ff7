"""Factory for the execution-host adapters.

Keeps the CLI free from direct adapter imports: the only topology decision
is whether an agent address was given.

The factory uses lazy imports so commands that never launch a server do
not load pymongo or the socket machinery.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mongowrap.core.build_log import BuildLog
    from mongowrap.core.supervisor import ServiceSupervisor
    from mongowrap.ports.channel import ExecutionChannel
    from mongowrap.ports.launcher import ProcessLauncher


class ExecutionFactory:
    """Creates the channel, launcher and supervisor for one invocation.

    Args:
        agent: Agent address for a remote execution host, or None for local.
    """

    def __init__(self, agent: str | None = None) -> None:
        self.agent = agent

    @property
    def is_remote(self) -> bool:
        return bool(self.agent)

    def create_channel(self) -> ExecutionChannel:
        """Create the channel to the execution host.

        Raises:
            ValueError: If the agent address cannot be parsed.
        """
        if self.agent:
            from mongowrap.adapters.channel.client import SocketChannel

            return SocketChannel(self.agent)

        from mongowrap.adapters.channel.local import LocalChannel

        return LocalChannel()

    def create_launcher(self, channel: ExecutionChannel) -> ProcessLauncher:
        if self.agent:
            from mongowrap.adapters.process.remote import RemoteProcessLauncher

            return RemoteProcessLauncher(channel)

        from mongowrap.adapters.process.local import LocalProcessLauncher

        return LocalProcessLauncher()

    def create_supervisor(self, build_log: BuildLog) -> ServiceSupervisor:
        from mongowrap.core.supervisor import ServiceSupervisor

        channel = self.create_channel()
        return ServiceSupervisor(
            channel=channel,
            launcher=self.create_launcher(channel),
            build_log=build_log,
        )
