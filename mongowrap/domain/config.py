"""Config domain models for mongowrap.

Two layers of configuration feed a launch: administrator-managed
installations (stored in the global config.toml) and the per-invocation
service settings. Empty or zero invocation values mean "inherit the
installation default".
"""

from dataclasses import dataclass, field

from mongowrap.domain.exceptions import ConfigurationError

DEFAULT_PORT = 27017
DEFAULT_START_TIMEOUT_MS = 15000
SERVICE_LOG_FILE = "mongodb.log"
DEFAULT_DATA_DIRECTORY = ("data", "db")


def is_port_number(value: str | None) -> bool:
    """Check that value is empty or a decimal integer in [0, 65535]."""
    if not value:
        return True
    if not (value.isascii() and value.isdigit()):
        return False
    return int(value) <= 65535


@dataclass(frozen=True)
class Installation:
    """A named, administrator-configured MongoDB installation.

    Attributes:
        name: Unique installation name (e.g., "mongo-7")
        executable: Mapping of lower-cased platform name ("linux", "darwin",
                    "windows") to the mongod path on that platform. The
                    "default" key is used when no platform key matches.
        port: Default port (empty = server default)
        parameters: Default extra parameters (e.g., "--quiet --nojournal")
        start_timeout: Default start timeout in milliseconds (0 = built-in default)

    Raises:
        ValueError: If name is empty, no executable is given, port is not
                   a valid port number, or start_timeout is negative.
    """

    name: str
    executable: dict[str, str] = field(default_factory=dict)
    port: str = ""
    parameters: str = ""
    start_timeout: int = 0

    def __post_init__(self) -> None:
        """Validate installation after initialization."""
        if not self.name:
            raise ValueError("Installation name cannot be empty")
        if not self.executable:
            raise ValueError(f"Installation '{self.name}' has no executable")
        if not is_port_number(self.port):
            raise ValueError(f"port must be a number in [0, 65535], got {self.port!r}")
        if self.start_timeout < 0:
            raise ValueError(
                f"start_timeout cannot be negative, got {self.start_timeout}"
            )

    def executable_for(self, platform: str) -> str:
        """Resolve the executable path for a target platform.

        Args:
            platform: Lower-cased platform.system() of the execution host.

        Returns:
            Path to the mongod executable on that host.

        Raises:
            ConfigurationError: If neither the platform nor "default" is configured.
        """
        path = self.executable.get(platform.lower()) or self.executable.get("default")
        if not path:
            raise ConfigurationError(
                f"Installation '{self.name}' has no executable for platform '{platform}'",
                hint="Add a 'default' entry or one for this platform under [installations.executable]",
            )
        return path


@dataclass(frozen=True)
class ServiceConfig:
    """Per-invocation service settings.

    Attributes:
        installation: Name of the installation to launch
        dbpath: Data directory; empty means <workspace>/data/db, relative
               paths are resolved against the workspace
        port: Port as entered by the user; empty means the server default
        parameters: Extra parameters overriding the installation's defaults
        start_timeout: Readiness timeout in milliseconds (0 = installation default)

    Raises:
        ValueError: If port is not empty or a number in [0, 65535], or
                   start_timeout is negative.
    """

    installation: str = ""
    dbpath: str = ""
    port: str = ""
    parameters: str = ""
    start_timeout: int = 0

    def __post_init__(self) -> None:
        """Validate service config after initialization."""
        if not is_port_number(self.port):
            raise ValueError(f"port must be a number in [0, 65535], got {self.port!r}")
        if self.start_timeout < 0:
            raise ValueError(
                f"start_timeout cannot be negative, got {self.start_timeout}"
            )

    def effective_port(self, installation: Installation) -> str:
        """Invocation port if set, else the installation default."""
        return self.port or installation.port

    def effective_parameters(self, installation: Installation) -> str:
        """Invocation parameters if set, else the installation defaults."""
        return self.parameters or installation.parameters

    def effective_start_timeout(self, installation: Installation) -> int:
        """Invocation timeout if positive, else the installation default."""
        if self.start_timeout > 0:
            return self.start_timeout
        return installation.start_timeout

    def probe_address(self, installation: Installation) -> str:
        """Address the readiness probe connects to on the execution host."""
        return f"localhost:{self.effective_port(installation) or DEFAULT_PORT}"


@dataclass(frozen=True)
class InstallationsConfig:
    """Immutable snapshot of all known installations.

    Attributes:
        installations: Installations in the order they were configured

    Raises:
        ValueError: If two installations share a name.
    """

    installations: tuple[Installation, ...] = ()

    def __post_init__(self) -> None:
        """Reject duplicate installation names."""
        names = [i.name for i in self.installations]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate installation names: {', '.join(duplicates)}")

    def find(self, name: str) -> Installation | None:
        """Look up an installation by exact name."""
        for installation in self.installations:
            if installation.name == name:
                return installation
        return None

    def names(self) -> list[str]:
        """Installation names in configured order."""
        return [i.name for i in self.installations]
