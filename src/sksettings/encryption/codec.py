"""
Symmetric string encryption with an embedded marker.

The cipher is AES-256-CBC with PKCS7 padding and a fixed IV, so the
same plaintext always produces the same ciphertext. The base64 text is
then salted with the constant MARKER at a random position. The marker
is the only thing that tells encrypted values from plaintext ones, and
the random position makes every encryption look different.
"""

from __future__ import annotations

import base64
import binascii
import logging
import random
from typing import Optional

from ..errors import SettingsEncryptionError

logger = logging.getLogger("sksettings.encryption.codec")

# Base64 of "__@?9I*.d+F%R:ud3^@__"
MARKER = "X19APzlJKi5kK0YlUjp1ZDNeQF9f"

DEFAULT_KEY = bytes([
    99, 119, 58, 216, 72, 201, 226, 160, 240, 173, 211, 44, 113, 209, 162, 1,
    71, 170, 69, 181, 236, 163, 17, 179, 231, 153, 163, 222, 181, 8, 11, 193,
])
DEFAULT_VECTOR = bytes([
    13, 48, 69, 91, 47, 97, 0, 169, 126, 212, 252, 221, 150, 34, 252, 216,
])

_random = random.SystemRandom()


def _derive_key(material: bytes, info: bytes, length: int) -> bytes:
    """Derive ``length`` bytes from ``material`` using HKDF-SHA256."""
    from cryptography.hazmat.primitives.hashes import SHA256
    from cryptography.hazmat.primitives.kdf.hkdf import HKDF

    hkdf = HKDF(algorithm=SHA256(), length=length, salt=None, info=info)
    return hkdf.derive(material)


def add_marker(text: str) -> str:
    """Insert MARKER at a uniformly random offset in ``[0, len(text))``."""
    position = _random.randrange(len(text)) if text else 0
    return f"{text[:position]}{MARKER}{text[position:]}"


def has_marker(text: str) -> bool:
    return MARKER in text


class EncryptionCodec:
    """Encrypts and decrypts single strings.

    Args:
        key: 32-byte AES key. Defaults to the library key.
        vector: 16-byte initialization vector. Defaults to the library IV.

    Raises:
        ValueError: Key or vector have the wrong length.
    """

    def __init__(self, key: Optional[bytes] = None, vector: Optional[bytes] = None) -> None:
        self._key = key if key is not None else DEFAULT_KEY
        self._vector = vector if vector is not None else DEFAULT_VECTOR
        if len(self._key) != 32:
            raise ValueError("The encryption key must be 32 bytes long.")
        if len(self._vector) != 16:
            raise ValueError("The initialization vector must be 16 bytes long.")

    @classmethod
    def from_passphrase(cls, passphrase: str) -> "EncryptionCodec":
        """Build a codec whose key and IV are derived from ``passphrase``."""
        material = passphrase.encode("utf-8")
        return cls(
            key=_derive_key(material, b"sksettings:encryption:key", 32),
            vector=_derive_key(material, b"sksettings:encryption:iv", 16),
        )

    def encrypt(self, text: Optional[str]) -> Optional[str]:
        """Encrypt ``text`` into marker-bearing base64. None stays None."""
        if text is None:
            return None
        ciphertext = self._encrypt_bytes(text.encode("utf-8"))
        return add_marker(base64.b64encode(ciphertext).decode("ascii"))

    def decrypt(self, text: Optional[str]) -> Optional[str]:
        """Decrypt ``text``. Values without MARKER are returned unchanged.

        Raises:
            SettingsEncryptionError: The value carries the marker but is
                not valid ciphertext for this codec.
        """
        if text is None:
            return None
        if not has_marker(text):
            return text
        encoded = text.replace(MARKER, "")
        try:
            ciphertext = base64.b64decode(encoded, validate=True)
            return self._decrypt_bytes(ciphertext).decode("utf-8")
        except (binascii.Error, ValueError) as exc:
            raise SettingsEncryptionError("Could not decrypt a marked value.") from exc

    def _encrypt_bytes(self, data: bytes) -> bytes:
        from cryptography.hazmat.primitives import padding
        from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(data) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(self._vector)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def _decrypt_bytes(self, data: bytes) -> bytes:
        from cryptography.hazmat.primitives import padding
        from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(self._vector)).decryptor()
        padded = decryptor.update(data) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
