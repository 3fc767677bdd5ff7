"""Unit tests for command-line assembly."""

from unittest.mock import MagicMock

import pytest

from mongowrap.core.arguments import (
    build_arguments,
    join_host_path,
    resolve_data_directory,
)
from mongowrap.domain.config import Installation, ServiceConfig

WORKSPACE = "/work/job"


def posix_absolute(path: str) -> bool:
    return path.startswith("/")


def never_absolute(path: str) -> bool:
    return False


def always_absolute(path: str) -> bool:
    return True


@pytest.fixture
def inst() -> Installation:
    return Installation(name="mongo", executable={"default": "/opt/mongod"})


class TestJoinHostPath:
    """Tests for join_host_path()."""

    def test_posix_base(self) -> None:
        assert join_host_path("/work/job", "data", "db") == "/work/job/data/db"

    def test_trailing_separator(self) -> None:
        assert join_host_path("/work/job/", "mongodb.log") == "/work/job/mongodb.log"

    def test_windows_base_keeps_backslashes(self) -> None:
        """Test that a Windows workspace is joined with its own separator."""
        assert join_host_path("C:\\ws\\job", "data", "db") == "C:\\ws\\job\\data\\db"

    def test_root(self) -> None:
        assert join_host_path("/", "db") == "/db"


class TestResolveDataDirectory:
    """Tests for resolve_data_directory()."""

    def test_empty_dbpath_uses_default(self) -> None:
        """Test that an empty dbpath resolves to <workspace>/data/db."""
        assert resolve_data_directory("", WORKSPACE, always_absolute) == "/work/job/data/db"

    def test_absolute_dbpath_unchanged(self) -> None:
        """Test that an absolute dbpath on the host is used verbatim."""
        assert resolve_data_directory("/var/db", WORKSPACE, always_absolute) == "/var/db"

    def test_relative_dbpath_joined_to_workspace(self) -> None:
        assert resolve_data_directory("var/db", WORKSPACE, never_absolute) == "/work/job/var/db"

    def test_absoluteness_decided_by_host(self) -> None:
        """Test that the host's check is consulted with the configured dbpath."""
        is_absolute = MagicMock(return_value=True)

        assert resolve_data_directory("D:\\db", "C:\\ws", is_absolute) == "D:\\db"
        is_absolute.assert_called_once_with("D:\\db")

    def test_empty_dbpath_skips_host_check(self) -> None:
        is_absolute = MagicMock()

        resolve_data_directory("", WORKSPACE, is_absolute)

        is_absolute.assert_not_called()


class TestBuildArguments:
    """Tests for build_arguments()."""

    def test_minimal_command(self, inst: Installation) -> None:
        """Test the argument order with only defaults."""
        command = build_arguments(ServiceConfig(), inst, "/opt/mongod", WORKSPACE, posix_absolute)

        assert command.args == [
            "/opt/mongod",
            "--logpath",
            "/work/job/mongodb.log",
            "--dbpath",
            "/work/job/data/db",
        ]
        assert command.data_directory == "/work/job/data/db"

    def test_full_command_order(self, inst: Installation) -> None:
        """Test logpath, dbpath, port, then parameters in given order."""
        config = ServiceConfig(dbpath="/srv/db", port="27019", parameters="--noprealloc --syncdelay 0")

        command = build_arguments(config, inst, "/opt/mongod", WORKSPACE, posix_absolute)

        assert command.args == [
            "/opt/mongod",
            "--logpath",
            "/work/job/mongodb.log",
            "--dbpath",
            "/srv/db",
            "--port",
            "27019",
            "--noprealloc",
            "--syncdelay",
            "0",
        ]

    def test_no_port_flag_when_unset(self, inst: Installation) -> None:
        command = build_arguments(ServiceConfig(), inst, "/opt/mongod", WORKSPACE, posix_absolute)

        assert "--port" not in command.args

    def test_whitespace_only_parameters_add_nothing(self, inst: Installation) -> None:
        config = ServiceConfig(parameters="  ")

        command = build_arguments(config, inst, "/opt/mongod", WORKSPACE, posix_absolute)

        assert len(command.args) == 5

    def test_quoted_value_with_spaces_kept_intact(self, inst: Installation) -> None:
        """Test that a value containing spaces stays a single argument."""
        config = ServiceConfig(parameters='--setParameter "a b c"')

        command = build_arguments(config, inst, "/opt/mongod", WORKSPACE, posix_absolute)

        assert command.args[-2:] == ["--setParameter", '"a b c"']

    def test_invocation_parameters_override_installation(self) -> None:
        inst = Installation(name="mongo", executable={"default": "m"}, parameters="--nojournal")

        command = build_arguments(ServiceConfig(parameters="--quiet"), inst, "m", WORKSPACE, posix_absolute)

        assert "--quiet" in command.args
        assert "--nojournal" not in command.args

    def test_installation_defaults_apply(self) -> None:
        """Test that empty invocation settings take installation defaults."""
        inst = Installation(name="mongo", executable={"default": "m"}, port="27018", parameters="--quiet")

        command = build_arguments(
            ServiceConfig(port="", parameters="--quiet"), inst, "m", WORKSPACE, posix_absolute
        )

        assert command.args[5:] == ["--port", "27018", "--quiet"]

    def test_deterministic(self, inst: Installation) -> None:
        """Test that repeated calls produce identical argument lists."""
        config = ServiceConfig(dbpath="db", port="1", parameters="--a--b c")

        results = [
            build_arguments(config, inst, "/opt/mongod", WORKSPACE, posix_absolute).args
            for _ in range(5)
        ]

        assert all(r == results[0] for r in results)

    def test_uses_host_path_flavor(self, inst: Installation) -> None:
        """Test that a Windows workspace produces Windows-style paths."""
        command = build_arguments(
            ServiceConfig(), inst, "C:\\mongo\\mongod.exe", "C:\\ws", lambda p: False
        )

        assert command.args[2] == "C:\\ws\\mongodb.log"
        assert command.data_directory == "C:\\ws\\data\\db"
