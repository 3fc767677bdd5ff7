"""Unit tests for ExecutionFactory."""

import pytest

from mongowrap.adapters.channel.client import SocketChannel
from mongowrap.adapters.channel.local import LocalChannel
from mongowrap.adapters.factory import ExecutionFactory
from mongowrap.adapters.process.local import LocalProcessLauncher
from mongowrap.adapters.process.remote import RemoteProcessLauncher
from mongowrap.core.build_log import BuildLog
from mongowrap.core.supervisor import ServiceSupervisor


class TestExecutionFactory:
    """Tests for topology selection."""

    def test_local_by_default(self, build_log: BuildLog) -> None:
        factory = ExecutionFactory()

        supervisor = factory.create_supervisor(build_log)

        assert not factory.is_remote
        assert isinstance(supervisor, ServiceSupervisor)
        assert isinstance(supervisor.channel, LocalChannel)
        assert isinstance(supervisor.launcher, LocalProcessLauncher)
        assert supervisor.build_log is build_log

    def test_remote_with_agent(self, build_log: BuildLog) -> None:
        """Test that an agent address selects the socket channel and remote launcher."""
        factory = ExecutionFactory("worker-1:7077")

        supervisor = factory.create_supervisor(build_log)

        assert factory.is_remote
        assert isinstance(supervisor.channel, SocketChannel)
        assert isinstance(supervisor.launcher, RemoteProcessLauncher)
        assert supervisor.launcher.channel is supervisor.channel

    def test_invalid_agent_address(self) -> None:
        with pytest.raises(ValueError):
            ExecutionFactory("worker-1").create_channel()
