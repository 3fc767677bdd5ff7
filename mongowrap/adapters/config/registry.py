"""Process-wide registry of MongoDB installations.

Readers take the current snapshot without locking. Administrative updates
go through a single write path that builds a new immutable snapshot,
persists it and swaps it in, so a reader never sees a half-updated list.
"""

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from mongowrap.domain.config import Installation, InstallationsConfig
from mongowrap.domain.exceptions import ConfigurationError
from mongowrap.shared.config_io import (
    get_global_config_path,
    load_installations,
    save_installations,
)

logger = logging.getLogger(__name__)


class InstallationRegistry:
    """Copy-on-write holder for the installations snapshot."""

    def __init__(
        self,
        snapshot: InstallationsConfig | None = None,
        path: Path | None = None,
        load_error: str | None = None,
    ):
        """Initialize registry.

        Args:
            snapshot: Initial installations (default: none)
            path: File updates are persisted to (None = in-memory only)
            load_error: Why path could not be read; updates are refused while set
        """
        self._snapshot = snapshot or InstallationsConfig()
        self.path = path
        self.load_error = load_error
        self._write_lock = threading.Lock()

    @classmethod
    def load(cls, path: Path | None = None) -> "InstallationRegistry":
        """Load the registry from the global config file.

        A missing or invalid file yields an empty registry. An invalid file
        also makes the registry read-only, so it is never overwritten.

        Args:
            path: Config file (default: global config path)
        """
        path = path or get_global_config_path()
        snapshot = InstallationsConfig()
        load_error = None

        if path.exists():
            try:
                snapshot = load_installations(path)
                logger.debug("Loaded %d installations from %s", len(snapshot.installations), path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Failed to parse config at %s: %s. No installations available.",
                    path,
                    e,
                )
                load_error = str(e)

        return cls(snapshot=snapshot, path=path, load_error=load_error)

    @property
    def snapshot(self) -> InstallationsConfig:
        """The current immutable snapshot."""
        return self._snapshot

    @property
    def installations(self) -> tuple[Installation, ...]:
        return self._snapshot.installations

    def find(self, name: str) -> Installation | None:
        return self._snapshot.find(name)

    def require(self, name: str | None) -> Installation:
        """Look up an installation, failing if it is not configured.

        Raises:
            ConfigurationError: If name is empty or unknown
        """
        installation = self._snapshot.find(name) if name else None
        if installation is None:
            known = ", ".join(self._snapshot.names()) or "none"
            raise ConfigurationError(
                "No MongoDB installation available"
                + (f" named '{name}'" if name else ""),
                hint=f"Configured installations: {known}. Add one with 'mongowrap installations add'",
            )
        return installation

    def replace(self, installations: Iterable[Installation]) -> InstallationsConfig:
        """Atomically replace the whole installations list.

        Raises:
            ValueError: If the new list contains duplicate names
            OSError: If the list cannot be persisted
        """
        with self._write_lock:
            return self._swap(InstallationsConfig(installations=tuple(installations)))

    def add(self, installation: Installation, overwrite: bool = False) -> InstallationsConfig:
        """Add an installation, or replace a same-named one if overwrite is set.

        Raises:
            ValueError: If the name is taken and overwrite is False
        """
        with self._write_lock:
            current = self._snapshot.installations
            if any(i.name == installation.name for i in current):
                if not overwrite:
                    raise ValueError(f"Installation '{installation.name}' already exists")
                updated = tuple(installation if i.name == installation.name else i for i in current)
            else:
                updated = current + (installation,)
            return self._swap(InstallationsConfig(installations=updated))

    def remove(self, name: str) -> InstallationsConfig:
        """Remove an installation by name.

        Raises:
            KeyError: If no installation has that name
        """
        with self._write_lock:
            current = self._snapshot.installations
            if not any(i.name == name for i in current):
                raise KeyError(name)
            updated = tuple(i for i in current if i.name != name)
            return self._swap(InstallationsConfig(installations=updated))

    def _swap(self, snapshot: InstallationsConfig) -> InstallationsConfig:
        # Caller holds _write_lock. Persist first so a failed write leaves
        # the old snapshot in place.
        if self.load_error is not None:
            raise ConfigurationError(
                f"Cannot update installations: {self.path} could not be read",
                hint=f"Fix or remove the file first ({self.load_error})",
            )
        if self.path is not None:
            save_installations(snapshot, self.path)
        self._snapshot = snapshot
        return snapshot
