"""Tests for the settings caches."""

from __future__ import annotations

import gc
import threading
import time

import pytest

from sksettings.cache import NoSettingsCache, StrongSettingsCache, WeakSettingsCache


class AppSettings:
    def __init__(self, name: str = "default") -> None:
        self.name = name


class OtherSettings:
    pass


def _wait_until_collected(cache: WeakSettingsCache, settings_type: type, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        gc.collect()
        hit, _ = cache.try_get(settings_type)
        if not hit:
            return True
        time.sleep(0.01)
    return False


def _add_unreferenced(cache: WeakSettingsCache) -> None:
    cache.add_or_update(AppSettings("short lived"))


class TestNoSettingsCache:
    """The cache that never caches."""

    def test_never_hits(self) -> None:
        cache = NoSettingsCache()
        cache.add_or_update(AppSettings())
        assert cache.try_get(AppSettings) == (False, None)
        assert cache.get_all() == []

    def test_try_get_or_add_always_creates(self) -> None:
        cache = NoSettingsCache()
        calls = []
        cache.try_get_or_add(AppSettings, lambda: calls.append(1) or AppSettings())
        cache.try_get_or_add(AppSettings, lambda: calls.append(1) or AppSettings())
        assert len(calls) == 2

    def test_try_remove_misses(self) -> None:
        assert NoSettingsCache().try_remove(AppSettings) == (False, None)


class TestStrongSettingsCache:
    """Direct-reference cache."""

    def test_miss_then_hit(self) -> None:
        cache = StrongSettingsCache()
        assert cache.try_get(AppSettings) == (False, None)
        settings = AppSettings()
        cache.add_or_update(settings)
        hit, cached = cache.try_get(AppSettings)
        assert hit
        assert cached is settings

    def test_update_replaces_entry(self) -> None:
        cache = StrongSettingsCache()
        cache.add_or_update(AppSettings("old"))
        newer = AppSettings("new")
        cache.add_or_update(newer)
        assert cache.try_get(AppSettings)[1] is newer
        assert len(cache.get_all()) == 1

    def test_keyed_by_type(self) -> None:
        cache = StrongSettingsCache()
        cache.add_or_update(AppSettings())
        assert cache.try_get(OtherSettings) == (False, None)

    def test_try_get_or_add(self) -> None:
        cache = StrongSettingsCache()
        first_from_cache, first = cache.try_get_or_add(AppSettings, AppSettings)
        second_from_cache, second = cache.try_get_or_add(AppSettings, AppSettings)
        assert first_from_cache is False
        assert second_from_cache is True
        assert first is second

    def test_try_remove(self) -> None:
        cache = StrongSettingsCache()
        settings = AppSettings()
        cache.add_or_update(settings)
        assert cache.try_remove(AppSettings) == (True, settings)
        assert cache.try_remove(AppSettings) == (False, None)
        assert cache.try_get(AppSettings) == (False, None)

    def test_get_all(self) -> None:
        cache = StrongSettingsCache()
        app, other = AppSettings(), OtherSettings()
        cache.add_or_update(app)
        cache.add_or_update(other)
        assert {id(item) for item in cache.get_all()} == {id(app), id(other)}

    def test_keeps_instance_alive(self) -> None:
        cache = StrongSettingsCache()
        cache.add_or_update(AppSettings("kept"))
        gc.collect()
        hit, cached = cache.try_get(AppSettings)
        assert hit
        assert cached.name == "kept"

    def test_concurrent_try_get_or_add_creates_once(self) -> None:
        cache = StrongSettingsCache()
        created = []
        results = []

        def factory() -> AppSettings:
            created.append(1)
            time.sleep(0.01)
            return AppSettings()

        def worker() -> None:
            results.append(cache.try_get_or_add(AppSettings, factory)[1])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(created) == 1
        assert len({id(result) for result in results}) == 1


class TestWeakSettingsCache:
    """Weak-reference cache."""

    def test_hit_while_alive(self) -> None:
        cache = WeakSettingsCache()
        settings = AppSettings()
        cache.add_or_update(settings)
        hit, cached = cache.try_get(AppSettings)
        assert hit
        assert cached is settings

    def test_miss_after_collection(self) -> None:
        cache = WeakSettingsCache()
        _add_unreferenced(cache)
        assert _wait_until_collected(cache, AppSettings)
        assert cache.get_all() == []

    def test_try_get_or_add_refreshes_collected_entry(self) -> None:
        cache = WeakSettingsCache()
        _add_unreferenced(cache)
        assert _wait_until_collected(cache, AppSettings)

        from_cache, fresh = cache.try_get_or_add(AppSettings, lambda: AppSettings("fresh"))
        assert from_cache is False
        assert fresh.name == "fresh"
        assert cache.try_get(AppSettings) == (True, fresh)

    def test_try_get_or_add_hit(self) -> None:
        cache = WeakSettingsCache()
        settings = AppSettings()
        cache.add_or_update(settings)
        from_cache, cached = cache.try_get_or_add(AppSettings, AppSettings)
        assert from_cache is True
        assert cached is settings

    def test_try_remove(self) -> None:
        cache = WeakSettingsCache()
        settings = AppSettings()
        cache.add_or_update(settings)
        assert cache.try_remove(AppSettings) == (True, settings)
        assert cache.try_get(AppSettings) == (False, None)

    def test_try_remove_collected(self) -> None:
        cache = WeakSettingsCache()
        _add_unreferenced(cache)
        assert _wait_until_collected(cache, AppSettings)
        assert cache.try_remove(AppSettings) == (False, None)

    def test_get_all_skips_dead_entries(self) -> None:
        cache = WeakSettingsCache()
        other = OtherSettings()
        cache.add_or_update(other)
        _add_unreferenced(cache)
        assert _wait_until_collected(cache, AppSettings)
        assert cache.get_all() == [other]

    def test_rejects_unreferenceable_instances(self) -> None:
        with pytest.raises(TypeError):
            WeakSettingsCache().add_or_update(42)
