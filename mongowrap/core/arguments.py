"""Command-line assembly for the MongoDB server.

Turns the layered configuration into an ordered argument list. The only
fact taken from the execution host is whether a configured dbpath is
absolute there, supplied by the caller as a callable.
"""

from collections.abc import Callable
from dataclasses import dataclass

from mongowrap.domain.config import (
    DEFAULT_DATA_DIRECTORY,
    SERVICE_LOG_FILE,
    Installation,
    ServiceConfig,
)
from mongowrap.domain.value_objects import tokenize_parameters


@dataclass(frozen=True)
class LaunchCommand:
    """Assembled command line and the data directory it points at.

    Attributes:
        args: Executable followed by its arguments
        data_directory: Resolved --dbpath on the execution host
    """

    args: list[str]
    data_directory: str


def join_host_path(base: str, *parts: str) -> str:
    """Join path parts using the separator the base path already uses.

    The execution host may not share the controller's path flavor, so a
    base containing only backslashes is treated as a Windows path.
    """
    sep = "\\" if "\\" in base and "/" not in base else "/"
    path = base.rstrip(sep) or base
    for part in parts:
        if not path.endswith(sep):
            path += sep
        path += part
    return path


def resolve_data_directory(
    dbpath: str,
    workspace: str,
    is_absolute: Callable[[str], bool],
) -> str:
    """Resolve the data directory on the execution host.

    Args:
        dbpath: Configured dbpath (may be empty)
        workspace: Workspace root on the execution host
        is_absolute: Absoluteness check evaluated on the execution host

    Returns:
        <workspace>/data/db for an empty dbpath, dbpath unchanged if absolute,
        otherwise <workspace>/<dbpath>
    """
    if not dbpath:
        return join_host_path(workspace, *DEFAULT_DATA_DIRECTORY)
    if is_absolute(dbpath):
        return dbpath
    return join_host_path(workspace, dbpath)


def build_arguments(
    config: ServiceConfig,
    installation: Installation,
    executable: str,
    workspace: str,
    is_absolute: Callable[[str], bool],
) -> LaunchCommand:
    """Build the mongod command line.

    Order is stable: executable, --logpath, --dbpath, --port (if set), then
    the effective extra parameters in the order given.

    Args:
        config: Invocation-level settings
        installation: Installation supplying defaults
        executable: mongod path on the execution host
        workspace: Workspace root on the execution host
        is_absolute: Absoluteness check evaluated on the execution host

    Returns:
        LaunchCommand with the argument list and resolved data directory
    """
    args = [executable, "--logpath", join_host_path(workspace, SERVICE_LOG_FILE)]

    data_directory = resolve_data_directory(config.dbpath, workspace, is_absolute)
    args.extend(["--dbpath", data_directory])

    port = config.effective_port(installation)
    if port:
        args.extend(["--port", port])

    for token in tokenize_parameters(config.effective_parameters(installation)):
        args.extend(token.to_args())

    return LaunchCommand(args=args, data_directory=data_directory)
