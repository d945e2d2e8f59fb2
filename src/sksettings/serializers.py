"""
Settings serializers: settings instances to text and back.

Both serializers validate through a pydantic ``TypeAdapter``, so pydantic
models, pydantic dataclasses and standard dataclasses all work. Values
such as paths, IP addresses, enums, timedeltas and regex patterns are
converted by pydantic itself.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Optional, TypeVar

import yaml
from pydantic import TypeAdapter, ValidationError

from .errors import SettingsError, SettingsLoadError, SettingsSaveError
from .models import SettingsLayoutChangedNotification

logger = logging.getLogger("sksettings.serializers")

T = TypeVar("T")


@lru_cache(maxsize=None)
def _adapter(settings_type: type) -> TypeAdapter:
    return TypeAdapter(settings_type)


def _wants_raw_data(settings_type: type) -> bool:
    return issubclass(settings_type, SettingsLayoutChangedNotification)


class SettingsSerializer(ABC):
    """Converts settings instances to and from their stored text."""

    @abstractmethod
    def deserialize(self, settings_type: type[T], data: str) -> tuple[Optional[T], Optional[dict[str, Any]]]:
        """Turn stored text into a settings instance.

        Args:
            settings_type: The class to create.
            data: The stored text.

        Returns:
            ``(instance, raw_data)``. ``raw_data`` is the parsed document and
            is only filled when ``settings_type`` implements
            SettingsLayoutChangedNotification.

        Raises:
            SettingsLoadError: The text could not be deserialized.
        """

    @abstractmethod
    def serialize(self, settings: Any) -> str:
        """Turn a settings instance into text.

        Raises:
            SettingsSaveError: The instance could not be serialized.
        """

    def are_identical(self, settings: Any, data: str) -> bool:
        """Whether re-serializing ``settings`` reproduces ``data`` exactly.

        Raises:
            SettingsError: The comparison itself failed.
        """
        try:
            return self.serialize(settings) == data
        except Exception as exc:
            raise SettingsError(
                "Could not compare the settings instance with the settings data."
            ) from exc


class JsonSettingsSerializer(SettingsSerializer):
    """Indented JSON via pydantic.

    Args:
        indent: Indentation of written documents.
        by_alias: Write field aliases instead of attribute names.
    """

    def __init__(self, indent: int = 2, by_alias: bool = True) -> None:
        self.indent = indent
        self.by_alias = by_alias

    def deserialize(self, settings_type: type[T], data: str) -> tuple[Optional[T], Optional[dict[str, Any]]]:
        if not data or not data.strip():
            raise SettingsLoadError("Cannot deserialize empty settings data.")
        try:
            raw_data = json.loads(data) if _wants_raw_data(settings_type) else None
            settings = _adapter(settings_type).validate_json(data)
        except (ValueError, ValidationError) as exc:
            raise SettingsLoadError(
                f"Could not deserialize the settings data of '{settings_type.__name__}'."
            ) from exc
        return settings, raw_data

    def serialize(self, settings: Any) -> str:
        try:
            payload = _adapter(type(settings)).dump_json(
                settings, indent=self.indent, by_alias=self.by_alias,
            )
        except Exception as exc:
            raise SettingsSaveError(
                f"Could not serialize the settings instance '{type(settings).__name__}'."
            ) from exc
        return payload.decode("utf-8")


class YamlSettingsSerializer(SettingsSerializer):
    """Block-style YAML via PyYAML, validated by pydantic."""

    def __init__(self, by_alias: bool = True) -> None:
        self.by_alias = by_alias

    def deserialize(self, settings_type: type[T], data: str) -> tuple[Optional[T], Optional[dict[str, Any]]]:
        if not data or not data.strip():
            raise SettingsLoadError("Cannot deserialize empty settings data.")
        try:
            document = yaml.safe_load(data)
            if document is None:
                document = {}
            settings = _adapter(settings_type).validate_python(document)
        except (yaml.YAMLError, ValueError, ValidationError) as exc:
            raise SettingsLoadError(
                f"Could not deserialize the settings data of '{settings_type.__name__}'."
            ) from exc
        raw_data = document if _wants_raw_data(settings_type) else None
        return settings, raw_data

    def serialize(self, settings: Any) -> str:
        try:
            document = _adapter(type(settings)).dump_python(
                settings, mode="json", by_alias=self.by_alias,
            )
            return yaml.safe_dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)
        except Exception as exc:
            raise SettingsSaveError(
                f"Could not serialize the settings instance '{type(settings).__name__}'."
            ) from exc
