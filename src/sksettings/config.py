"""
Manager configuration: assemble a manager from a YAML file.

Example ``sksettings.yaml``:

    directory: ~/.config/myapp
    file_extension: .json
    format: json
    cache: strong
    encryption:
      enabled: true
      passphrase_env: MYAPP_SETTINGS_KEY
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

from . import SETTINGS_DIR
from .cache import NoSettingsCache, SettingsCache, StrongSettingsCache, WeakSettingsCache
from .manager import BaseSettingsManager, SettingsManager
from .serializers import JsonSettingsSerializer, SettingsSerializer, YamlSettingsSerializer
from .sinks import DEFAULT_FILE_EXTENSION, FileSettingsSink

logger = logging.getLogger("sksettings.config")


class SerializerFormat(str, Enum):
    """Supported storage formats."""

    JSON = "json"
    YAML = "yaml"


class CacheMode(str, Enum):
    """Supported cache flavours."""

    NONE = "none"
    STRONG = "strong"
    WEAK = "weak"


class EncryptionConfig(BaseModel):
    """Field encryption settings."""

    enabled: bool = False
    passphrase_env: Optional[str] = Field(
        default=None,
        description="Environment variable holding the passphrase. Unset means the library key.",
    )


class ManagerConfig(BaseModel):
    """Everything needed to build a settings manager."""

    directory: Path = Field(default_factory=lambda: Path(SETTINGS_DIR))
    file_extension: str = DEFAULT_FILE_EXTENSION
    format: SerializerFormat = SerializerFormat.JSON
    cache: CacheMode = CacheMode.STRONG
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)


def load_config(path: Optional[Union[str, Path]] = None) -> ManagerConfig:
    """Read a ManagerConfig from YAML.

    Args:
        path: Config file. Missing or None means defaults.

    Returns:
        The parsed config, or defaults if the file is missing or invalid.
    """
    if path is None:
        return ManagerConfig()
    config_file = Path(path).expanduser()
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return ManagerConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s. Using defaults", config_file, exc)
    else:
        logger.warning("Config file %s not found. Using defaults", config_file)
    return ManagerConfig()


def make_serializer(config: ManagerConfig) -> SettingsSerializer:
    if config.format == SerializerFormat.YAML:
        return YamlSettingsSerializer()
    return JsonSettingsSerializer()


def make_cache(config: ManagerConfig) -> SettingsCache:
    return {
        CacheMode.NONE: NoSettingsCache,
        CacheMode.STRONG: StrongSettingsCache,
        CacheMode.WEAK: WeakSettingsCache,
    }[config.cache]()


def build_manager(config: Optional[ManagerConfig] = None) -> BaseSettingsManager:
    """Assemble sink, serializer, cache and optional encryption.

    Args:
        config: Configuration to build from. Defaults to ManagerConfig().

    Returns:
        A ready-to-use manager.
    """
    config = config or ManagerConfig()
    sink = FileSettingsSink(config.directory, file_extension=config.file_extension)
    manager: BaseSettingsManager = SettingsManager(sink, make_serializer(config), make_cache(config))

    if config.encryption.enabled:
        from .encryption import apply_encryption

        passphrase = None
        if config.encryption.passphrase_env:
            passphrase = os.environ.get(config.encryption.passphrase_env)
            if passphrase is None:
                logger.warning(
                    "%s is not set, encrypting with the library key",
                    config.encryption.passphrase_env,
                )
        manager = apply_encryption(manager, passphrase=passphrase)

    return manager
