"""
Settings manager: the single call that gets you your settings.

Load flow:
    cache hit ──────────────────────────────────────────────► return
    sink.retrieve ─ None ─► default instance (saved unless prevented)
                 └ data ─► deserialize ─► drift? ─► layout_changed + save with backup
    ─► cache update ─► loaded() ─► return

Every call on one manager runs behind a single reentrant lock. The
manager owns neither the sink, the serializer nor the cache; they are
injected and may be shared.
"""

from __future__ import annotations

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from typing import Any, Optional, TypeVar

from .cache import NoSettingsCache, SettingsCache
from .errors import (
    MissingSettingsManagerError,
    SettingsDeleteError,
    SettingsError,
    SettingsLoadError,
    SettingsNoDataAvailableError,
    SettingsSaveError,
)
from .models import SettingsLayoutChangedNotification, SettingsLoadedNotification
from .serializers import SettingsSerializer
from .sinks import SettingsSink

logger = logging.getLogger("sksettings.manager")

T = TypeVar("T")


class BaseSettingsManager(ABC):
    """Load/save/delete contract shared by managers and their wrappers."""

    @abstractmethod
    def load(
        self,
        settings_type: type[T],
        bypass_cache: bool = False,
        prevent_update: bool = False,
        prevent_creation: bool = False,
    ) -> T:
        """Load the settings of ``settings_type``.

        Args:
            settings_type: The settings class.
            bypass_cache: Ignore any cache and force loading from the sink.
            prevent_update: Never write back to the sink during this load.
            prevent_creation: Fail instead of creating a default instance
                when no data is stored.

        Returns:
            The settings instance.

        Raises:
            SettingsLoadError: Loading failed.
            SettingsNoDataAvailableError: No data and ``prevent_creation``.
        """

    @abstractmethod
    def save(self, settings: Any, create_backup: bool = False) -> None:
        """Persist ``settings``.

        Raises:
            SettingsSaveError: Saving failed.
        """

    @abstractmethod
    def delete(self, settings_type: type, create_backup: bool = False) -> None:
        """Remove stored data of ``settings_type`` and evict it from any cache.

        Raises:
            SettingsDeleteError: Deleting failed.
        """


class SettingsManager(BaseSettingsManager):
    """Manager backed by a sink, a serializer and an optional cache.

    Args:
        sink: Persistent storage.
        serializer: Converts instances to and from stored text.
        cache: Optional cache. Defaults to NoSettingsCache.
    """

    def __init__(
        self,
        sink: SettingsSink,
        serializer: SettingsSerializer,
        cache: Optional[SettingsCache] = None,
    ) -> None:
        self._sink = sink
        self._serializer = serializer
        self._cache = cache if cache is not None else NoSettingsCache()
        self._lock = threading.RLock()

    @property
    def sink(self) -> SettingsSink:
        return self._sink

    @property
    def serializer(self) -> SettingsSerializer:
        return self._serializer

    @property
    def cache(self) -> SettingsCache:
        return self._cache

    def load(
        self,
        settings_type: type[T],
        bypass_cache: bool = False,
        prevent_update: bool = False,
        prevent_creation: bool = False,
    ) -> T:
        with self._lock:
            if not bypass_cache:
                hit, cached = self._cache.try_get(settings_type)
                if hit:
                    logger.debug("Cache hit for %s", settings_type.__name__)
                    return cached

            data = self._retrieve(settings_type)
            if data is None:
                if prevent_creation:
                    raise SettingsNoDataAvailableError(settings_type)
                settings = self._create_default(settings_type, prevent_update)
            else:
                settings, raw_data = self._deserialize(settings_type, data)
                if settings is None:
                    settings = self._create_default(settings_type, prevent_update)
                elif not prevent_update and not self._are_identical(settings, data):
                    logger.info(
                        "Stored data of %s differs from its layout, rewriting",
                        settings_type.__name__,
                    )
                    if raw_data is not None and isinstance(settings, SettingsLayoutChangedNotification):
                        settings.layout_changed(raw_data)
                    self.save(settings, create_backup=True)

            bind_manager(settings, self)

            if not bypass_cache:
                self._cache.add_or_update(settings)

            if isinstance(settings, SettingsLoadedNotification):
                settings.loaded()

            return settings

    def save(self, settings: Any, create_backup: bool = False) -> None:
        with self._lock:
            try:
                data = self._serializer.serialize(settings)
            except SettingsSaveError:
                raise
            except Exception as exc:
                raise SettingsSaveError(
                    f"Could not serialize '{type(settings).__name__}'."
                ) from exc

            try:
                self._sink.store(type(settings), data, create_backup=create_backup)
            except SettingsSaveError:
                raise
            except Exception as exc:
                raise SettingsSaveError(
                    f"Could not store '{type(settings).__name__}'."
                ) from exc

    def delete(self, settings_type: type, create_backup: bool = False) -> None:
        with self._lock:
            try:
                self._sink.purge(settings_type, create_backup=create_backup)
            except SettingsDeleteError:
                raise
            except Exception as exc:
                raise SettingsDeleteError(
                    f"Could not delete '{settings_type.__name__}'."
                ) from exc
            self._cache.try_remove(settings_type)
            logger.info("Deleted %s", settings_type.__name__)

    # -- helpers ------------------------------------------------------------

    def _retrieve(self, settings_type: type) -> Optional[str]:
        try:
            return self._sink.retrieve(settings_type)
        except SettingsLoadError:
            raise
        except Exception as exc:
            raise SettingsLoadError(
                f"Could not retrieve the settings data of '{settings_type.__name__}'."
            ) from exc

    def _deserialize(self, settings_type: type[T], data: str) -> tuple[Optional[T], Optional[dict]]:
        try:
            return self._serializer.deserialize(settings_type, data)
        except SettingsLoadError:
            raise
        except Exception as exc:
            raise SettingsLoadError(
                f"Could not deserialize the settings data of '{settings_type.__name__}'."
            ) from exc

    def _are_identical(self, settings: Any, data: str) -> bool:
        try:
            return self._serializer.are_identical(settings, data)
        except SettingsError as exc:
            raise SettingsLoadError(str(exc)) from (exc.__cause__ or exc)
        except Exception as exc:
            raise SettingsLoadError(
                f"Could not compare the settings data of '{type(settings).__name__}'."
            ) from exc

    def _create_default(self, settings_type: type[T], prevent_update: bool) -> T:
        try:
            settings = settings_type()
        except Exception as exc:
            raise SettingsLoadError(
                f"Could not create a default instance of '{settings_type.__name__}'."
            ) from exc
        logger.info("Created default %s", settings_type.__name__)
        if not prevent_update:
            self.save(settings)
        return settings


# ---------------------------------------------------------------------------
# Bound save / reload
# ---------------------------------------------------------------------------

_bound_managers: dict[type, weakref.ref] = {}
_bound_lock = threading.Lock()


def bind_manager(settings: Any, manager: BaseSettingsManager) -> None:
    """Remember ``manager`` as the one that loaded ``settings``'s type."""
    with _bound_lock:
        _bound_managers[type(settings)] = weakref.ref(manager)


def _bound_manager(settings: Any, method_name: str) -> BaseSettingsManager:
    with _bound_lock:
        ref = _bound_managers.get(type(settings))
    manager = ref() if ref is not None else None
    if manager is None:
        raise MissingSettingsManagerError(settings, method_name)
    return manager


def save_settings(settings: Any, create_backup: bool = False) -> None:
    """Save ``settings`` through the manager that loaded it.

    Raises:
        MissingSettingsManagerError: No manager has loaded this type.
    """
    _bound_manager(settings, "save").save(settings, create_backup=create_backup)


def reload_settings(settings: T, prevent_update: bool = False) -> T:
    """Load a fresh instance of ``settings``'s type, bypassing the cache.

    Raises:
        MissingSettingsManagerError: No manager has loaded this type.
    """
    manager = _bound_manager(settings, "reload")
    return manager.load(type(settings), bypass_cache=True, prevent_update=prevent_update)
