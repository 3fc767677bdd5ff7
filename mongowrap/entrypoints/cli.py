"""mongowrap CLI entrypoint.

Command-line interface for running a task against a throwaway MongoDB
server.
"""

from __future__ import annotations

import functools
import logging
import os
import subprocess
from pathlib import Path

import click

from mongowrap.core.build_log import BuildLog
from mongowrap.core.errors import MongowrapCliError
from mongowrap.core.validation import check_dbpath, check_port, check_start_timeout
from mongowrap.domain.config import Installation, ServiceConfig
from mongowrap.domain.exceptions import MongowrapDomainError
from mongowrap.version import __version__

logger = logging.getLogger(__name__)


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    Domain errors become MongowrapCliError with their hint; anything
    unexpected is wrapped with a hint to rerun with --verbose.

    Args:
        command_name: Name of the command for error messages.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (MongowrapCliError, click.exceptions.Exit, click.Abort):
                raise
            except MongowrapDomainError as e:
                raise MongowrapCliError(e.message, hint=e.hint) from e
            except ValueError as e:
                raise MongowrapCliError(str(e)) from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise MongowrapCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def _load_registry(ctx: click.Context):
    from mongowrap.adapters.config.registry import InstallationRegistry

    return InstallationRegistry.load(ctx.obj.get("config_path"))


def _validate_port_option(ctx: click.Context, param: click.Parameter, value: str) -> str:
    result = check_port(value)
    if result.is_error():
        raise click.BadParameter(result.message)
    return value.strip()


@click.group()
@click.version_option(version=__version__, prog_name="mongowrap")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="MONGOWRAP_CONFIG",
    help="Installations config file (default: ~/.config/mongowrap/config.toml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """mongowrap - run a task against a throwaway MongoDB server.

    Starts mongod with a fresh data directory, waits until it answers,
    runs the task and kills the server afterwards.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command(context_settings={"ignore_unknown_options": True})
@click.option(
    "--installation",
    "-i",
    required=True,
    help="Name of the configured installation to launch.",
)
@click.option(
    "--workspace",
    "-w",
    type=str,
    default=None,
    help="Workspace root on the execution host (default: current directory).",
)
@click.option(
    "--dbpath",
    default="",
    help="Data directory; relative paths are resolved against the workspace.",
)
@click.option(
    "--port",
    default="",
    callback=_validate_port_option,
    help="Port for mongod (default: installation setting, then 27017).",
)
@click.option(
    "--parameters",
    default="",
    help="Extra mongod parameters, overriding the installation's (e.g. '--quiet').",
)
@click.option(
    "--start-timeout",
    type=click.IntRange(min=0),
    default=0,
    help="Milliseconds to wait for mongod to answer (0 = installation default).",
)
@click.option(
    "--agent",
    default=None,
    envvar="MONGOWRAP_AGENT",
    help="Agent address (host:port or socket path) of a remote execution host.",
)
@click.argument("command", nargs=-1, type=click.UNPROCESSED, required=True)
@click.pass_context
@handle_cli_errors("run")
def run(
    ctx: click.Context,
    installation: str,
    workspace: str | None,
    dbpath: str,
    port: str,
    parameters: str,
    start_timeout: int,
    agent: str | None,
    command: tuple[str, ...],
) -> None:
    """Run COMMAND while a MongoDB server is up.

    The server is killed when COMMAND exits, whether it succeeds, fails
    or is interrupted. Exits with COMMAND's exit status.

    Example: mongowrap run -i mongo-7 --port 27018 -- pytest tests/
    """
    from mongowrap.adapters.factory import ExecutionFactory
    from mongowrap.domain.exceptions import ConfigurationError

    registry = _load_registry(ctx)
    target = registry.require(installation)

    if workspace is None:
        if agent:
            raise ConfigurationError(
                "No workspace available",
                hint="Pass --workspace with a path on the agent's host",
            )
        workspace = os.getcwd()

    config = ServiceConfig(
        installation=installation,
        dbpath=dbpath,
        port=port,
        parameters=parameters,
        start_timeout=start_timeout,
    )

    build_log = BuildLog()
    supervisor = ExecutionFactory(agent).create_supervisor(build_log)
    task_cwd = workspace if not agent else None

    with supervisor.start(config, target, workspace):
        try:
            result = subprocess.run(list(command), cwd=task_cwd)
        except OSError as e:
            raise MongowrapCliError(f"Failed to run {command[0]}: {e}") from e

    ctx.exit(result.returncode)


@cli.group()
def installations() -> None:
    """Manage configured MongoDB installations."""
    pass


@installations.command("list")
@click.pass_context
@handle_cli_errors("installations list")
def list_installations(ctx: click.Context) -> None:
    """List configured installations."""
    registry = _load_registry(ctx)
    if not registry.installations:
        click.echo("No installations configured.")
        return

    for inst in registry.installations:
        click.echo(inst.name)
        for platform_name, path in sorted(inst.executable.items()):
            click.echo(f"    executable[{platform_name}] = {path}")
        if inst.port:
            click.echo(f"    port = {inst.port}")
        if inst.parameters:
            click.echo(f"    parameters = {inst.parameters}")
        if inst.start_timeout:
            click.echo(f"    start_timeout = {inst.start_timeout}")


@installations.command("add")
@click.argument("name")
@click.option(
    "--executable",
    "-e",
    required=True,
    help="Path to mongod on the execution host.",
)
@click.option(
    "--platform",
    "platform_name",
    default="default",
    help="Platform this executable applies to (linux, darwin, windows, default).",
)
@click.option("--port", default="", callback=_validate_port_option, help="Default port.")
@click.option("--parameters", default="", help="Default extra parameters.")
@click.option(
    "--start-timeout",
    type=click.IntRange(min=0),
    default=0,
    help="Default start timeout in milliseconds.",
)
@click.option("--force", "-f", is_flag=True, help="Replace an existing installation.")
@click.pass_context
@handle_cli_errors("installations add")
def add_installation(
    ctx: click.Context,
    name: str,
    executable: str,
    platform_name: str,
    port: str,
    parameters: str,
    start_timeout: int,
    force: bool,
) -> None:
    """Add an installation named NAME."""
    registry = _load_registry(ctx)

    executables = {platform_name.lower(): executable}
    existing = registry.find(name)
    if existing is not None and force:
        # Keep paths for other platforms when updating one of them
        executables = {**existing.executable, **executables}

    registry.add(
        Installation(
            name=name,
            executable=executables,
            port=port,
            parameters=parameters,
            start_timeout=start_timeout,
        ),
        overwrite=force,
    )
    click.echo(f"Saved installation '{name}' to {registry.path}")


@installations.command("remove")
@click.argument("name")
@click.pass_context
@handle_cli_errors("installations remove")
def remove_installation(ctx: click.Context, name: str) -> None:
    """Remove the installation named NAME."""
    registry = _load_registry(ctx)
    try:
        registry.remove(name)
    except KeyError:
        raise MongowrapCliError(
            f"No installation named '{name}'",
            hint="Run 'mongowrap installations list' to see configured installations",
        ) from None
    click.echo(f"Removed installation '{name}'")


@cli.command()
@click.option("--port", default=None, help="Port value to check.")
@click.option("--start-timeout", default=None, help="Start timeout value to check.")
@click.option("--dbpath", default=None, help="Data path to check (on this machine).")
@click.pass_context
def validate(
    ctx: click.Context,
    port: str | None,
    start_timeout: str | None,
    dbpath: str | None,
) -> None:
    """Check service settings before using them.

    Exits with status 1 if any value is invalid. Warnings do not fail.
    """
    checks = {
        "port": (port, check_port),
        "start-timeout": (start_timeout, check_start_timeout),
        "dbpath": (dbpath, check_dbpath),
    }

    failed = False
    for field_name, (value, check) in checks.items():
        if value is None:
            continue
        result = check(value)
        if result.kind == "ok":
            click.echo(f"{field_name}: ok")
        else:
            click.echo(f"{field_name}: {result.kind}: {result.message}", err=result.is_error())
            failed = failed or result.is_error()

    if failed:
        ctx.exit(1)


@cli.command()
@click.option(
    "--listen",
    "-l",
    required=True,
    help="Address to listen on (host:port or socket path).",
)
@click.option(
    "--executable",
    "-e",
    "executables",
    multiple=True,
    help="Executable the agent may start (repeatable). "
    "Defaults to the executables of this host's installations.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write agent logs to this file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="INFO",
    help="Log level.",
)
@click.pass_context
@handle_cli_errors("agent")
def agent(
    ctx: click.Context,
    listen: str,
    executables: tuple[str, ...],
    log_file: Path | None,
    log_level: str,
) -> None:
    """Run the agent on an execution host.

    Controllers pass this address as --agent to launch MongoDB here. The
    agent has no authentication and starts only allowlisted executables;
    listen on a Unix socket or a private interface.
    """
    from mongowrap.adapters.channel.agent import AgentServer
    from mongowrap.adapters.channel.handlers import RequestHandler
    from mongowrap.domain.exceptions import ConfigurationError

    allowed = list(executables)
    if not allowed:
        installations = _load_registry(ctx).installations
        allowed = sorted({path for i in installations for path in i.executable.values()})
    if not allowed:
        raise ConfigurationError(
            "No executables allowed on this agent",
            hint="Pass --executable with the path to mongod, or add an installation on this host",
        )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
    logger.info(f"Allowed executables: {', '.join(allowed)}")

    AgentServer(listen, handler=RequestHandler(executables=allowed)).run()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
