"""Tests for the sksettings CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import pytest
from click.testing import CliRunner

from sksettings import Settings, __version__
from sksettings.cli import main
from sksettings.encryption import MARKER, Encrypt

TARGET = "test_cli:CliSettings"


class CliSettings(Settings):
    host: str = "cli.example.org"
    password: Annotated[str, Encrypt()] = ""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, settings_dir: Path) -> Path:
    """A manager config pointing at a temporary settings directory."""
    path = tmp_path / "sksettings.yaml"
    path.write_text(f"directory: {settings_dir}\n", encoding="utf-8")
    return path


class TestEncryptDecrypt:
    """Tests for the encrypt and decrypt commands."""

    def test_encrypt_output_carries_marker(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["encrypt", "hunter2"])
        assert result.exit_code == 0
        assert MARKER in result.output

    def test_roundtrip(self, runner: CliRunner) -> None:
        encrypted = runner.invoke(main, ["encrypt", "hunter2"]).output.strip()
        result = runner.invoke(main, ["decrypt", encrypted])
        assert result.exit_code == 0
        assert result.output.strip() == "hunter2"

    def test_passphrase_roundtrip(self, runner: CliRunner) -> None:
        encrypted = runner.invoke(main, ["encrypt", "hunter2", "--passphrase", "pw"]).output.strip()
        result = runner.invoke(main, ["decrypt", encrypted], env={"SKSETTINGS_PASSPHRASE": "pw"})
        assert result.output.strip() == "hunter2"

    def test_decrypt_plaintext_is_unchanged(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["decrypt", "just text"])
        assert result.exit_code == 0
        assert result.output.strip() == "just text"

    def test_decrypt_garbage_fails(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["decrypt", f"!!{MARKER}??"])
        assert result.exit_code == 1
        assert "Could not decrypt" in result.output


class TestSettingsCommands:
    """Tests for show, path and delete."""

    def test_path(self, runner: CliRunner, config_file: Path, settings_dir: Path) -> None:
        result = runner.invoke(main, ["path", TARGET, "--config", str(config_file)])
        assert result.exit_code == 0
        assert result.output.strip() == str(settings_dir / "test_cli.CliSettings.settings")

    def test_show_creates_default(self, runner: CliRunner, config_file: Path, settings_dir: Path) -> None:
        result = runner.invoke(main, ["show", TARGET, "--config", str(config_file)])
        assert result.exit_code == 0
        assert "cli.example.org" in result.output
        assert (settings_dir / "test_cli.CliSettings.settings").exists()

    def test_show_no_update(self, runner: CliRunner, config_file: Path, settings_dir: Path) -> None:
        result = runner.invoke(main, ["show", TARGET, "--config", str(config_file), "--no-update"])
        assert result.exit_code == 0
        assert not (settings_dir / "test_cli.CliSettings.settings").exists()

    def test_show_broken_data_fails(self, runner: CliRunner, config_file: Path, settings_dir: Path) -> None:
        (settings_dir / "test_cli.CliSettings.settings").write_text("{broken", encoding="utf-8")
        result = runner.invoke(main, ["show", TARGET, "--config", str(config_file)])
        assert result.exit_code == 1

    def test_delete(self, runner: CliRunner, config_file: Path, settings_dir: Path) -> None:
        runner.invoke(main, ["show", TARGET, "--config", str(config_file)])
        result = runner.invoke(main, ["delete", TARGET, "--config", str(config_file), "--backup"])

        assert result.exit_code == 0
        assert "Deleted" in result.output
        assert not (settings_dir / "test_cli.CliSettings.settings").exists()
        assert len(list((settings_dir / ".backup").iterdir())) == 1

    @pytest.mark.parametrize("target", ["no_colon", "missing_module_xyz:Thing", "test_cli:Nope", "test_cli:TARGET"])
    def test_bad_target(self, runner: CliRunner, config_file: Path, target: str) -> None:
        result = runner.invoke(main, ["path", target, "--config", str(config_file)])
        assert result.exit_code == 2


class TestMain:
    """Tests for the command group itself."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        for command in ("encrypt", "decrypt", "show", "delete", "path"):
            assert command in result.output
