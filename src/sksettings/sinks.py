"""
Settings sinks: where serialized settings live between runs.

A sink stores one opaque text blob per settings type. ``None`` from
``retrieve`` means nothing was stored yet, which is different from an
empty string.

FileSettingsSink: one UTF-8 file per settings type, backups in ``.backup``.
MemorySettingsSink: a dict, for tests and throwaway applications.
"""

from __future__ import annotations

import logging
import shutil
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .errors import (
    SettingsDeleteError,
    SettingsLoadError,
    SettingsNoDataAvailableError,
    SettingsSaveError,
)
from .models import get_settings_name

logger = logging.getLogger("sksettings.sinks")

DEFAULT_FILE_EXTENSION = ".settings"
BACKUP_FOLDER_NAME = ".backup"
BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


class SettingsSink(ABC):
    """Abstract persistent storage for serialized settings."""

    @abstractmethod
    def retrieve(self, settings_type: type, throw_if_no_data: bool = False) -> Optional[str]:
        """Read the stored data of ``settings_type``.

        Args:
            settings_type: The settings class.
            throw_if_no_data: Raise instead of returning None when nothing
                is stored.

        Returns:
            The stored text, or None if nothing was stored yet.

        Raises:
            SettingsNoDataAvailableError: Nothing stored and ``throw_if_no_data``.
            SettingsLoadError: The storage could not be read.
        """

    @abstractmethod
    def store(self, settings_type: type, data: str, create_backup: bool = False) -> None:
        """Write ``data`` for ``settings_type``, optionally backing up the old data.

        Raises:
            SettingsSaveError: The storage could not be written.
        """

    @abstractmethod
    def purge(self, settings_type: type, create_backup: bool = False) -> None:
        """Remove the stored data of ``settings_type``.

        Raises:
            SettingsDeleteError: The data could not be removed.
        """


class FileSettingsSink(SettingsSink):
    """Stores every settings type as its own file.

    Storage layout:
        <directory>/
        ├── app.MailSettings.settings
        └── .backup/
            └── app.MailSettings_2026-10-19_08-15-00.settings

    Args:
        directory: Where settings files live. Created if missing.
        file_extension: Extension of settings files, with or without dot.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        file_extension: str = DEFAULT_FILE_EXTENSION,
    ) -> None:
        self.directory = Path(directory).expanduser()
        self.file_extension = "." + file_extension.lstrip(".")
        self.directory.mkdir(parents=True, exist_ok=True)

    @property
    def backup_directory(self) -> Path:
        return self.directory / BACKUP_FOLDER_NAME

    def settings_file(self, settings_type: type) -> Path:
        """Path of the file that holds ``settings_type``."""
        return self.directory / f"{get_settings_name(settings_type)}{self.file_extension}"

    def retrieve(self, settings_type: type, throw_if_no_data: bool = False) -> Optional[str]:
        path = self.settings_file(settings_type)
        if not path.exists():
            if throw_if_no_data:
                raise SettingsNoDataAvailableError(settings_type)
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SettingsLoadError(
                f"Could not load the settings data from file '{path}'."
            ) from exc

    def store(self, settings_type: type, data: str, create_backup: bool = False) -> None:
        path = self.settings_file(settings_type)
        try:
            if create_backup:
                self._create_backup(path)

            if not data or not data.strip():
                if path.exists():
                    path.unlink()
                    logger.info("Removed %s (no data to store)", path.name)
                return

            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(data, encoding="utf-8")
        except OSError as exc:
            raise SettingsSaveError(
                f"Could not save settings data to file '{path}'."
            ) from exc

    def purge(self, settings_type: type, create_backup: bool = False) -> None:
        path = self.settings_file(settings_type)
        try:
            if create_backup:
                self._create_backup(path)
            if path.exists():
                path.unlink()
                logger.info("Purged %s", path.name)
        except OSError as exc:
            raise SettingsDeleteError(
                f"Could not delete settings file '{path}'."
            ) from exc

    def _create_backup(self, path: Path) -> Optional[Path]:
        """Copy ``path`` into the backup folder. Same-second backups are overwritten."""
        if not path.exists():
            return None
        stamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        backup = self.backup_directory / f"{path.stem}_{stamp}{path.suffix}"
        self.backup_directory.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, backup)
        logger.debug("Backed up %s to %s", path.name, backup.name)
        return backup


class MemorySettingsSink(SettingsSink):
    """Keeps settings data in memory.

    Backups are appended to ``backups`` as ``(name, data)`` pairs.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self.data: dict[str, str] = dict(initial or {})
        self.backups: list[tuple[str, str]] = []

    def retrieve(self, settings_type: type, throw_if_no_data: bool = False) -> Optional[str]:
        with self._lock:
            data = self.data.get(get_settings_name(settings_type))
        if data is None and throw_if_no_data:
            raise SettingsNoDataAvailableError(settings_type)
        return data

    def store(self, settings_type: type, data: str, create_backup: bool = False) -> None:
        name = get_settings_name(settings_type)
        with self._lock:
            if create_backup:
                self._create_backup(name)
            if not data or not data.strip():
                self.data.pop(name, None)
            else:
                self.data[name] = data

    def purge(self, settings_type: type, create_backup: bool = False) -> None:
        name = get_settings_name(settings_type)
        with self._lock:
            if create_backup:
                self._create_backup(name)
            self.data.pop(name, None)

    def _create_backup(self, name: str) -> None:
        if name in self.data:
            self.backups.append((name, self.data[name]))
