"""
Exception taxonomy for settings persistence.

Sinks and serializers raise these directly. The manager wraps anything
else that escapes them, keeping the original exception as ``__cause__``.
"""

from __future__ import annotations

from typing import Any, Optional


class SettingsError(Exception):
    """Base class for every error raised by sksettings."""


class SettingsLoadError(SettingsError):
    """Loading settings failed (retrieve, deserialize or compare)."""


class SettingsNoDataAvailableError(SettingsLoadError):
    """No stored data exists and creating a default instance was prevented."""

    def __init__(self, settings_type: Optional[type] = None) -> None:
        self.settings_type = settings_type
        name = settings_type.__name__ if settings_type is not None else "settings"
        super().__init__(f"No stored data is available for '{name}'.")


class SettingsSaveError(SettingsError):
    """Saving settings failed (serialize or store)."""


class SettingsDeleteError(SettingsError):
    """Deleting settings failed (purge)."""


class SettingsEncryptionError(SettingsError):
    """A marked value could not be decoded or decrypted."""


class MissingSettingsManagerError(Exception):
    """A bound save/reload was called on an instance no manager has loaded."""

    def __init__(self, settings: Any, method_name: str) -> None:
        self.settings = settings
        super().__init__(
            f"Could not find a settings manager to use with '{method_name}' for "
            f"'{type(settings).__name__}'. Load the instance through a manager first."
        )
