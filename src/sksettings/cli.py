"""
SKSettings CLI: inspect and maintain stored settings.

Entry point: sksettings.cli:main

Examples:

    sksettings encrypt "hunter2"
    sksettings show myapp.settings:MailSettings --config sksettings.yaml
    sksettings delete myapp.settings:MailSettings --backup
"""

from __future__ import annotations

import importlib
import logging
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax

from . import __version__
from .config import build_manager, load_config, make_serializer
from .errors import SettingsError

console = Console()


def import_settings_type(target: str) -> type:
    """Resolve ``"package.module:ClassName"`` to a class.

    Raises:
        click.BadParameter: The target is malformed or cannot be imported.
    """
    module_name, _, class_name = target.partition(":")
    if not module_name or not class_name:
        raise click.BadParameter(f"Expected 'module:Class', got '{target}'.")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"Cannot import '{module_name}': {exc}") from exc
    settings_type = module
    for part in class_name.split("."):
        settings_type = getattr(settings_type, part, None)
        if settings_type is None:
            raise click.BadParameter(f"'{module_name}' has no attribute '{class_name}'.")
    if not isinstance(settings_type, type):
        raise click.BadParameter(f"'{target}' is not a class.")
    return settings_type


def _codec(passphrase: Optional[str]):
    from .encryption import EncryptionCodec

    if passphrase:
        return EncryptionCodec.from_passphrase(passphrase)
    return EncryptionCodec()


@click.group()
@click.version_option(version=__version__, prog_name="sksettings")
@click.option("--verbose", "-v", is_flag=True, help="Log what the manager does.")
def main(verbose: bool):
    """SKSettings: typed settings that persist themselves."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@main.command("encrypt")
@click.argument("value")
@click.option("--passphrase", envvar="SKSETTINGS_PASSPHRASE", default=None, help="Derive the key from a passphrase.")
def encrypt_cmd(value: str, passphrase: Optional[str]):
    """Encrypt VALUE the way marked fields are stored."""
    click.echo(_codec(passphrase).encrypt(value))


@main.command("decrypt")
@click.argument("value")
@click.option("--passphrase", envvar="SKSETTINGS_PASSPHRASE", default=None, help="Derive the key from a passphrase.")
def decrypt_cmd(value: str, passphrase: Optional[str]):
    """Decrypt VALUE. Values without the marker are printed unchanged."""
    try:
        click.echo(_codec(passphrase).decrypt(value))
    except SettingsError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)


@main.command("show")
@click.argument("target")
@click.option("--config", "config_path", default=None, type=click.Path(), help="Manager config (YAML).")
@click.option("--no-update", is_flag=True, help="Do not rewrite drifted or missing data.")
def show_cmd(target: str, config_path: Optional[str], no_update: bool):
    """Load TARGET (module:Class) and print it."""
    settings_type = import_settings_type(target)
    config = load_config(config_path)
    manager = build_manager(config)
    try:
        settings = manager.load(settings_type, bypass_cache=True, prevent_update=no_update)
        text = make_serializer(config).serialize(settings)
    except SettingsError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)

    console.print(Panel(
        Syntax(text, config.format.value, word_wrap=True),
        title=settings_type.__name__,
        border_style="cyan",
    ))


@main.command("delete")
@click.argument("target")
@click.option("--config", "config_path", default=None, type=click.Path(), help="Manager config (YAML).")
@click.option("--backup", is_flag=True, help="Back up the stored data first.")
def delete_cmd(target: str, config_path: Optional[str], backup: bool):
    """Delete the stored data of TARGET (module:Class)."""
    settings_type = import_settings_type(target)
    manager = build_manager(load_config(config_path))
    try:
        manager.delete(settings_type, create_backup=backup)
    except SettingsError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)
    console.print(f"[green]Deleted[/] {settings_type.__name__}")


@main.command("path")
@click.argument("target")
@click.option("--config", "config_path", default=None, type=click.Path(), help="Manager config (YAML).")
def path_cmd(target: str, config_path: Optional[str]):
    """Print the file TARGET (module:Class) is stored in."""
    from .sinks import FileSettingsSink

    settings_type = import_settings_type(target)
    config = load_config(config_path)
    sink = FileSettingsSink(config.directory, file_extension=config.file_extension)
    click.echo(str(sink.settings_file(settings_type)))
