"""
SKSettings: typed settings that persist themselves.

One call gets you your settings object: cached, freshly created, or
loaded from storage and rewritten when the stored layout drifted.
Fields marked for encryption never hit the disk in plaintext.

A smilinTux Open Source Project.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

SETTINGS_DIR = os.environ.get("SKSETTINGS_DIR", ".settings")

from .cache import NoSettingsCache, SettingsCache, StrongSettingsCache, WeakSettingsCache  # noqa: E402
from .errors import (  # noqa: E402
    MissingSettingsManagerError,
    SettingsDeleteError,
    SettingsEncryptionError,
    SettingsError,
    SettingsLoadError,
    SettingsNoDataAvailableError,
    SettingsSaveError,
)
from .manager import BaseSettingsManager, SettingsManager, reload_settings, save_settings  # noqa: E402
from .models import (  # noqa: E402
    Settings,
    SettingsLayoutChangedNotification,
    SettingsLoadedNotification,
    get_settings_name,
    settings_name,
)
from .serializers import JsonSettingsSerializer, SettingsSerializer, YamlSettingsSerializer  # noqa: E402
from .sinks import FileSettingsSink, MemorySettingsSink, SettingsSink  # noqa: E402

__all__ = [
    "BaseSettingsManager",
    "FileSettingsSink",
    "JsonSettingsSerializer",
    "MemorySettingsSink",
    "MissingSettingsManagerError",
    "NoSettingsCache",
    "Settings",
    "SettingsCache",
    "SettingsDeleteError",
    "SettingsEncryptionError",
    "SettingsError",
    "SettingsLayoutChangedNotification",
    "SettingsLoadError",
    "SettingsLoadedNotification",
    "SettingsManager",
    "SettingsNoDataAvailableError",
    "SettingsSaveError",
    "SettingsSerializer",
    "SettingsSink",
    "StrongSettingsCache",
    "WeakSettingsCache",
    "YamlSettingsSerializer",
    "get_settings_name",
    "reload_settings",
    "save_settings",
    "settings_name",
]
