"""
Encrypting settings manager: transparent field encryption around any manager.

Storage only ever sees ciphertext for ``Encrypt``-marked fields while
callers only ever see plaintext:

    load:   inner.load ─► decrypt fields ─► any plaintext found? ─► save
    save:   encrypt fields ─► inner.save ─► decrypt fields again
    delete: inner.delete
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Optional, TypeVar

from ..errors import SettingsError, SettingsSaveError
from ..manager import BaseSettingsManager, bind_manager
from .codec import EncryptionCodec
from .walker import PropertyDescriptor, PropertyWalker

logger = logging.getLogger("sksettings.encryption.manager")

T = TypeVar("T")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class EncryptingSettingsManager(BaseSettingsManager):
    """Wraps a manager so that marked fields are stored encrypted.

    Args:
        inner: The manager doing the actual persistence.
        codec: Codec used for all fields. Defaults to the library key.
        walker: Walker used to find marked fields.
    """

    def __init__(
        self,
        inner: BaseSettingsManager,
        codec: Optional[EncryptionCodec] = None,
        walker: Optional[PropertyWalker] = None,
    ) -> None:
        self._inner = inner
        self._codec = codec or EncryptionCodec()
        self._walker = walker or PropertyWalker()
        # Instances already in plaintext form, keyed by id.
        self._normalized: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    @property
    def inner(self) -> BaseSettingsManager:
        return self._inner

    @property
    def codec(self) -> EncryptionCodec:
        return self._codec

    def load(
        self,
        settings_type: type[T],
        bypass_cache: bool = False,
        prevent_update: bool = False,
        prevent_creation: bool = False,
    ) -> T:
        settings = self._inner.load(
            settings_type,
            bypass_cache=bypass_cache,
            prevent_update=prevent_update,
            prevent_creation=prevent_creation,
        )
        if not self._is_normalized(settings):
            needs_encryption = self.decrypt_properties(settings)
            if needs_encryption and not prevent_update:
                logger.info("Re-encrypting plaintext fields of %s", settings_type.__name__)
                self.save(settings)
            self._mark_normalized(settings)
        bind_manager(settings, self)
        return settings

    def save(self, settings: Any, create_backup: bool = False) -> None:
        try:
            self.encrypt_properties(settings)
            self._inner.save(settings, create_backup=create_backup)
        except SettingsError:
            raise
        except Exception as exc:
            raise SettingsSaveError(
                f"Could not encrypt '{type(settings).__name__}' for saving."
            ) from exc
        finally:
            # Also undoes a partial encryption pass.
            self.decrypt_properties(settings)
        self._mark_normalized(settings)

    def delete(self, settings_type: type, create_backup: bool = False) -> None:
        self._inner.delete(settings_type, create_backup=create_backup)

    def decrypt_properties(self, settings: Any) -> bool:
        """Decrypt every marked field of ``settings`` in place.

        Returns:
            True if at least one non-blank marked field was not encrypted,
            meaning the stored data should be rewritten.
        """
        all_encrypted = True
        for descriptor in self._relevant_properties(settings):
            if _is_blank(descriptor.value):
                continue
            decrypted = self._codec.decrypt(descriptor.value)
            # A value that decrypts to itself (ignoring case) was plaintext.
            all_encrypted &= descriptor.value.casefold() != decrypted.casefold()
            if decrypted != descriptor.value:
                descriptor.setter(decrypted)
        if not all_encrypted:
            logger.debug("%s holds plaintext in encrypted fields", type(settings).__name__)
        return not all_encrypted

    def encrypt_properties(self, settings: Any) -> None:
        """Encrypt every non-blank marked field of ``settings`` in place."""
        for descriptor in self._relevant_properties(settings):
            if _is_blank(descriptor.value):
                continue
            encrypted = self._codec.encrypt(descriptor.value)
            if encrypted != descriptor.value:
                descriptor.setter(encrypted)

    def _relevant_properties(self, settings: Any) -> list[PropertyDescriptor]:
        # Materialized up front: setters must not disturb the walk.
        return list(self._walker.walk(settings))

    def _is_normalized(self, settings: Any) -> bool:
        try:
            return self._normalized.get(id(settings)) is settings
        except TypeError:
            return False

    def _mark_normalized(self, settings: Any) -> None:
        try:
            self._normalized[id(settings)] = settings
        except TypeError:
            logger.debug("%s does not support weak references", type(settings).__name__)


def apply_encryption(
    manager: BaseSettingsManager,
    key: Optional[bytes] = None,
    vector: Optional[bytes] = None,
    passphrase: Optional[str] = None,
) -> EncryptingSettingsManager:
    """Wrap ``manager`` so that every ``Encrypt``-marked field is stored encrypted.

    Args:
        manager: The manager to wrap.
        key: Optional 32-byte AES key.
        vector: Optional 16-byte initialization vector.
        passphrase: Derive key and vector from this instead.

    Returns:
        The wrapping manager.
    """
    if passphrase is not None:
        codec = EncryptionCodec.from_passphrase(passphrase)
    else:
        codec = EncryptionCodec(key=key, vector=vector)
    return EncryptingSettingsManager(manager, codec=codec)
