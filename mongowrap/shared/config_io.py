"""Configuration I/O utilities for reading and writing TOML config files.

This module handles serialization/deserialization of the installations
list to/from TOML format.
"""

import os
import platform
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from mongowrap.domain.config import Installation, InstallationsConfig


def get_global_config_path() -> Path:
    """Get the path to the global config file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/mongowrap/config.toml or ~/.config/mongowrap/config.toml
    - Windows: %APPDATA%/mongowrap/config.toml

    Returns:
        Path to the global config file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "mongowrap" / "config.toml"
        return Path.home() / ".config" / "mongowrap" / "config.toml"
    else:
        xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
        if xdg_config:
            return Path(xdg_config) / "mongowrap" / "config.toml"
        return Path.home() / ".config" / "mongowrap" / "config.toml"


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Args:
        path: Path to config.toml file

    Returns:
        Dictionary with parsed TOML data

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def installation_from_data(data: dict[str, Any]) -> Installation:
    """Convert one [[installations]] table to an Installation.

    ``executable`` may be a single path (used on every platform) or a table
    keyed by platform name.

    Raises:
        ValueError: If required fields are missing or have the wrong type
    """
    if not isinstance(data, dict):
        raise ValueError("Each [[installations]] entry must be a table")

    executable = data.get("executable", {})
    if isinstance(executable, str):
        executable = {"default": executable}
    if not isinstance(executable, dict) or not all(
        isinstance(v, str) for v in executable.values()
    ):
        raise ValueError(f"Invalid executable for installation {data.get('name')!r}")

    start_timeout = data.get("start_timeout", 0)
    if not isinstance(start_timeout, int) or isinstance(start_timeout, bool):
        raise ValueError(f"start_timeout must be an integer, got {start_timeout!r}")

    return Installation(
        name=str(data.get("name", "")),
        executable={k.lower(): v for k, v in executable.items()},
        port=str(data.get("port", "")),
        parameters=str(data.get("parameters", "")),
        start_timeout=start_timeout,
    )


def config_data_to_installations(data: dict[str, Any]) -> InstallationsConfig:
    """Convert raw config data dictionary to InstallationsConfig.

    Raises:
        ValueError: If the installations list is malformed
    """
    entries = data.get("installations", [])
    if not isinstance(entries, list):
        raise ValueError("'installations' must be an array of tables")
    return InstallationsConfig(
        installations=tuple(installation_from_data(entry) for entry in entries)
    )


def installations_to_config_data(config: InstallationsConfig) -> dict[str, Any]:
    """Convert InstallationsConfig to a TOML-serializable dictionary."""
    entries = []
    for installation in config.installations:
        entry: dict[str, Any] = {"name": installation.name}
        if installation.port:
            entry["port"] = installation.port
        if installation.parameters:
            entry["parameters"] = installation.parameters
        if installation.start_timeout:
            entry["start_timeout"] = installation.start_timeout
        entry["executable"] = dict(installation.executable)
        entries.append(entry)
    return {"installations": entries}


def load_installations(path: Path) -> InstallationsConfig:
    """Load installations from a TOML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    return config_data_to_installations(load_config_data(path))


def save_installations(config: InstallationsConfig, path: Path) -> None:
    """Save installations to a TOML file.

    Other top-level tables already in the file are preserved. The file is
    written to a temporary sibling and renamed into place.

    Raises:
        ValueError: If the existing file is not valid TOML; it is left untouched
    """
    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = load_config_data(path)
        except ValueError as e:
            raise ValueError(f"Refusing to overwrite {path}: {e}") from e
    data.update(installations_to_config_data(config))

    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("wb") as f:
        tomli_w.dump(data, f)
    os.replace(tmp_path, path)
