"""
Settings caches: one instance per settings type.

Three flavours:
    NoSettingsCache:     never caches, every load goes to the sink.
    StrongSettingsCache: keeps instances alive until removed.
    WeakSettingsCache:   remembers instances only while somebody else
                         holds on to them; the garbage collector decides.

Caches may be shared between managers, so every mutating operation is
guarded by a lock.
"""

from __future__ import annotations

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger("sksettings.cache")

T = TypeVar("T")


class SettingsCache(ABC):
    """Type-keyed cache for settings instances."""

    @abstractmethod
    def try_get(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        """Look up the cached instance of ``settings_type``.

        Returns:
            ``(True, instance)`` on a hit, ``(False, None)`` otherwise.
        """

    @abstractmethod
    def add_or_update(self, settings: Any) -> None:
        """Cache ``settings`` under its concrete type, replacing any entry."""

    @abstractmethod
    def try_get_or_add(self, settings_type: type[T], factory: Callable[[], T]) -> tuple[bool, T]:
        """Return the cached instance or create one with ``factory``.

        Returns:
            ``(was_from_cache, instance)``.
        """

    @abstractmethod
    def try_remove(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        """Evict the entry of ``settings_type``.

        Returns:
            ``(True, instance)`` if a live instance was removed.
        """

    @abstractmethod
    def get_all(self) -> list[Any]:
        """All currently cached (and still alive) instances."""


class NoSettingsCache(SettingsCache):
    """A cache that never caches anything."""

    def try_get(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        return False, None

    def add_or_update(self, settings: Any) -> None:
        pass

    def try_get_or_add(self, settings_type: type[T], factory: Callable[[], T]) -> tuple[bool, T]:
        return False, factory()

    def try_remove(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        return False, None

    def get_all(self) -> list[Any]:
        return []


class StrongSettingsCache(SettingsCache):
    """Cache holding direct references. Entries live until removed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[type, Any] = {}

    def try_get(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        with self._lock:
            settings = self._cache.get(settings_type)
        return settings is not None, settings

    def add_or_update(self, settings: Any) -> None:
        with self._lock:
            self._cache[type(settings)] = settings

    def try_get_or_add(self, settings_type: type[T], factory: Callable[[], T]) -> tuple[bool, T]:
        # Held across the factory call: the first caller's instance wins.
        with self._lock:
            settings = self._cache.get(settings_type)
            if settings is not None:
                return True, settings
            settings = factory()
            self._cache[settings_type] = settings
            return False, settings

    def try_remove(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        with self._lock:
            settings = self._cache.pop(settings_type, None)
        return settings is not None, settings

    def get_all(self) -> list[Any]:
        with self._lock:
            return list(self._cache.values())


class _WeakSlot:
    """A retargetable weak reference."""

    __slots__ = ("_ref",)

    def __init__(self, target: Any) -> None:
        self._ref = weakref.ref(target)

    def get(self) -> Optional[Any]:
        return self._ref()

    def set(self, target: Any) -> None:
        self._ref = weakref.ref(target)


class WeakSettingsCache(SettingsCache):
    """Cache holding weak references.

    An entry stays useful only while the application keeps the instance
    alive somewhere else. Settings types must support weak references
    (pydantic models and ordinary classes do).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[type, _WeakSlot] = {}

    def try_get(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        with self._lock:
            slot = self._cache.get(settings_type)
            settings = slot.get() if slot is not None else None
        return settings is not None, settings

    def add_or_update(self, settings: Any) -> None:
        with self._lock:
            self._cache[type(settings)] = _WeakSlot(settings)

    def try_get_or_add(self, settings_type: type[T], factory: Callable[[], T]) -> tuple[bool, T]:
        with self._lock:
            slot = self._cache.get(settings_type)
            if slot is None:
                settings = factory()
                self._cache[settings_type] = _WeakSlot(settings)
                return False, settings

            settings = slot.get()
            if settings is not None:
                return True, settings

            logger.debug("Cached %s was collected, refreshing", settings_type.__name__)
            settings = factory()
            slot.set(settings)
            return False, settings

    def try_remove(self, settings_type: type[T]) -> tuple[bool, Optional[T]]:
        with self._lock:
            slot = self._cache.pop(settings_type, None)
        settings = slot.get() if slot is not None else None
        return settings is not None, settings

    def get_all(self) -> list[Any]:
        with self._lock:
            alive = [slot.get() for slot in self._cache.values()]
        return [settings for settings in alive if settings is not None]
