"""Unit tests for config I/O utilities."""

import tomllib
from pathlib import Path

import pytest

from mongowrap.domain.config import Installation, InstallationsConfig
from mongowrap.shared.config_io import (
    config_data_to_installations,
    get_global_config_path,
    installation_from_data,
    installations_to_config_data,
    load_config_data,
    load_installations,
    save_installations,
)


class TestGetGlobalConfigPath:
    """Tests for get_global_config_path function."""

    def test_uses_xdg_config_home_when_set(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr("platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_global_config_path() == tmp_path / "mongowrap" / "config.toml"

    def test_falls_back_to_home_config(self, monkeypatch) -> None:
        monkeypatch.setattr("platform.system", lambda: "Darwin")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        assert get_global_config_path() == Path.home() / ".config" / "mongowrap" / "config.toml"

    def test_uses_appdata_on_windows(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr("platform.system", lambda: "Windows")
        monkeypatch.setenv("APPDATA", str(tmp_path))

        assert get_global_config_path() == tmp_path / "mongowrap" / "config.toml"


class TestLoadConfigData:
    """Tests for load_config_data function."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_data(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[[installations]\nname=")

        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config_data(path)


class TestInstallationFromData:
    """Tests for installation_from_data function."""

    def test_full_entry(self) -> None:
        inst = installation_from_data(
            {
                "name": "mongo-7",
                "port": 27018,
                "parameters": "--quiet",
                "start_timeout": 5000,
                "executable": {"Linux": "/usr/bin/mongod", "default": "mongod"},
            }
        )

        assert inst == Installation(
            name="mongo-7",
            executable={"linux": "/usr/bin/mongod", "default": "mongod"},
            port="27018",
            parameters="--quiet",
            start_timeout=5000,
        )

    def test_string_executable_becomes_default(self) -> None:
        inst = installation_from_data({"name": "m", "executable": "/usr/bin/mongod"})

        assert inst.executable == {"default": "/usr/bin/mongod"}

    def test_missing_executable(self) -> None:
        with pytest.raises(ValueError, match="no executable"):
            installation_from_data({"name": "m"})

    def test_non_integer_timeout(self) -> None:
        with pytest.raises(ValueError, match="start_timeout"):
            installation_from_data({"name": "m", "executable": "x", "start_timeout": "soon"})

    def test_boolean_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="start_timeout"):
            installation_from_data({"name": "m", "executable": "x", "start_timeout": True})

    def test_not_a_table(self) -> None:
        with pytest.raises(ValueError, match="must be a table"):
            installation_from_data("mongo")  # type: ignore[arg-type]


class TestConversion:
    """Tests for converting between TOML data and InstallationsConfig."""

    def test_empty_data(self) -> None:
        assert config_data_to_installations({}) == InstallationsConfig()

    def test_installations_must_be_array(self) -> None:
        with pytest.raises(ValueError, match="array of tables"):
            config_data_to_installations({"installations": {"name": "x"}})

    def test_omits_empty_defaults(self) -> None:
        config = InstallationsConfig(
            installations=(Installation(name="m", executable={"default": "mongod"}),)
        )

        assert installations_to_config_data(config) == {
            "installations": [{"name": "m", "executable": {"default": "mongod"}}]
        }


class TestSaveAndLoad:
    """Tests for save_installations and load_installations."""

    def test_save_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.toml"
        config = InstallationsConfig(
            installations=(
                Installation(name="a", executable={"linux": "/a"}, port="1", start_timeout=10),
                Installation(name="b", executable={"default": "/b"}, parameters="--quiet"),
            )
        )

        save_installations(config, path)

        assert load_installations(path) == config
        assert not path.with_suffix(".toml.tmp").exists()

    def test_preserves_other_tables(self, tmp_path: Path) -> None:
        """Test that unrelated settings in the file survive a save."""
        path = tmp_path / "config.toml"
        path.write_text('[agent]\nlisten = "10.0.0.5:7077"\n')

        save_installations(InstallationsConfig(), path)

        with path.open("rb") as f:
            data = tomllib.load(f)
        assert data["agent"] == {"listen": "10.0.0.5:7077"}
        assert data["installations"] == []

    def test_invalid_existing_file_is_not_overwritten(self, tmp_path: Path) -> None:
        """Test that a file that no longer parses is left as it was."""
        path = tmp_path / "config.toml"
        original = '[[installations]]\nname = "a"\nexecutable = "/a"\nbroken = [\n'
        path.write_text(original)

        with pytest.raises(ValueError, match="Refusing to overwrite"):
            save_installations(InstallationsConfig(), path)

        assert path.read_text() == original
