"""
Settings models and the optional capabilities a settings type can opt into.

Any default-constructible class can be persisted. ``Settings`` is the
first-class form: a pydantic model whose instances know which manager
loaded them, so ``settings.save()`` and ``settings.reload()`` just work.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")

SETTINGS_NAME_ATTRIBUTE = "__settings_name__"


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class SettingsLoadedNotification(ABC):
    """Settings that want to know when they were truly loaded.

    Fired once per load that went through the sink. Never fired when
    the instance came straight out of a cache.
    """

    @abstractmethod
    def loaded(self) -> None:
        """Called after the instance was loaded or created by a manager."""


class SettingsLayoutChangedNotification(ABC):
    """Settings that want to inspect stored data that no longer matches them."""

    @abstractmethod
    def layout_changed(self, raw_data: dict[str, Any]) -> None:
        """Called before drifted data is rewritten.

        Args:
            raw_data: The stored document as it was before the rewrite.
        """


# ---------------------------------------------------------------------------
# Base model
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    """Base class for persisted settings.

    Fields are validated on construction and on assignment. Unknown keys
    in stored data are ignored, which the manager then detects as drift.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    def save(self, create_backup: bool = False) -> None:
        """Save through the manager that loaded this instance."""
        from .manager import save_settings

        save_settings(self, create_backup=create_backup)

    def reload(self: T, prevent_update: bool = False) -> T:
        """Load a fresh copy through the manager that loaded this instance."""
        from .manager import reload_settings

        return reload_settings(self, prevent_update=prevent_update)


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def settings_name(name: str) -> Callable[[type[T]], type[T]]:
    """Class decorator giving a settings type a custom storage name.

    Usage:
        @settings_name("mail")
        class MailSettings(Settings):
            ...
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, SETTINGS_NAME_ATTRIBUTE, name)
        return cls

    return decorator


def get_settings_name(settings_type: type) -> str:
    """Storage name for a settings type.

    Args:
        settings_type: The settings class.

    Returns:
        The custom name set by ``settings_name``, otherwise
        ``"<module>.<qualified name>"``.

    Raises:
        TypeError: If ``settings_type`` is not a class.
    """
    if not isinstance(settings_type, type):
        raise TypeError(f"The passed value '{settings_type!r}' must be a class.")
    custom = settings_type.__dict__.get(SETTINGS_NAME_ATTRIBUTE)
    if custom:
        return custom
    return f"{settings_type.__module__}.{settings_type.__qualname__}"
