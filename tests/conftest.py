"""Shared test fixtures for sksettings."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from sksettings.serializers import JsonSettingsSerializer
from sksettings.sinks import MemorySettingsSink


class RecordingSink(MemorySettingsSink):
    """Memory sink that records every call it receives."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        super().__init__(initial)
        self.retrieve_calls: list[type] = []
        self.store_calls: list[tuple[type, str, bool]] = []
        self.purge_calls: list[tuple[type, bool]] = []

    def retrieve(self, settings_type: type, throw_if_no_data: bool = False) -> Optional[str]:
        self.retrieve_calls.append(settings_type)
        return super().retrieve(settings_type, throw_if_no_data)

    def store(self, settings_type: type, data: str, create_backup: bool = False) -> None:
        self.store_calls.append((settings_type, data, create_backup))
        super().store(settings_type, data, create_backup)

    def purge(self, settings_type: type, create_backup: bool = False) -> None:
        self.purge_calls.append((settings_type, create_backup))
        super().purge(settings_type, create_backup)


class BrokenSink(MemorySettingsSink):
    """Memory sink whose every operation blows up."""

    def retrieve(self, settings_type: type, throw_if_no_data: bool = False) -> Optional[str]:
        raise RuntimeError("disk on fire")

    def store(self, settings_type: type, data: str, create_backup: bool = False) -> None:
        raise RuntimeError("disk on fire")

    def purge(self, settings_type: type, create_backup: bool = False) -> None:
        raise RuntimeError("disk on fire")


@pytest.fixture
def sink() -> RecordingSink:
    """An empty recording memory sink."""
    return RecordingSink()


@pytest.fixture
def broken_sink() -> BrokenSink:
    """A sink that raises on every call."""
    return BrokenSink()


@pytest.fixture
def serializer() -> JsonSettingsSerializer:
    """The default JSON serializer."""
    return JsonSettingsSerializer()


@pytest.fixture
def settings_dir(tmp_path: Path) -> Path:
    """A temporary directory for file sinks."""
    directory = tmp_path / ".settings"
    directory.mkdir()
    return directory
