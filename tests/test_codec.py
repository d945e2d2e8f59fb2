"""Tests for the marker-based string encryption codec."""

from __future__ import annotations

import pytest

from sksettings.encryption.codec import (
    DEFAULT_KEY,
    DEFAULT_VECTOR,
    MARKER,
    EncryptionCodec,
    add_marker,
    has_marker,
)
from sksettings.errors import SettingsEncryptionError


@pytest.fixture
def codec() -> EncryptionCodec:
    return EncryptionCodec()


class TestRoundTrip:
    """Encrypt then decrypt gives the input back."""

    @pytest.mark.parametrize("text", [
        "hunter2",
        "",
        " padded ",
        "Grüße aus Köln ✓",
        "x" * 1000,
    ])
    def test_roundtrip(self, codec: EncryptionCodec, text: str) -> None:
        assert codec.decrypt(codec.encrypt(text)) == text

    def test_null_propagation(self, codec: EncryptionCodec) -> None:
        assert codec.encrypt(None) is None
        assert codec.decrypt(None) is None

    def test_encrypted_value_carries_marker(self, codec: EncryptionCodec) -> None:
        encrypted = codec.encrypt("secret")
        assert MARKER in encrypted
        assert encrypted != "secret"


class TestNonDeterminism:
    """The marker lands at a random offset."""

    def test_repeated_encryption_differs(self, codec: EncryptionCodec) -> None:
        results = {codec.encrypt("same plaintext") for _ in range(20)}
        assert len(results) > 1

    def test_every_variant_decrypts(self, codec: EncryptionCodec) -> None:
        for _ in range(20):
            assert codec.decrypt(codec.encrypt("same plaintext")) == "same plaintext"

    def test_cipher_is_deterministic_without_marker(self, codec: EncryptionCodec) -> None:
        first = codec.encrypt("same").replace(MARKER, "")
        second = codec.encrypt("same").replace(MARKER, "")
        assert first == second


class TestDecrypt:
    """Decrypting values that are not ciphertext."""

    def test_plaintext_is_returned_unchanged(self, codec: EncryptionCodec) -> None:
        assert codec.decrypt("not encrypted at all") == "not encrypted at all"

    def test_marked_garbage_raises(self, codec: EncryptionCodec) -> None:
        with pytest.raises(SettingsEncryptionError):
            codec.decrypt(f"!!{MARKER}??")

    def test_marked_value_of_wrong_length_raises(self, codec: EncryptionCodec) -> None:
        with pytest.raises(SettingsEncryptionError):
            codec.decrypt(f"QUJD{MARKER}")


class TestMarker:
    """Marker helpers."""

    def test_add_marker_keeps_text(self) -> None:
        marked = add_marker("abcdef")
        assert marked.replace(MARKER, "") == "abcdef"
        assert has_marker(marked)

    def test_add_marker_never_appends(self) -> None:
        for _ in range(50):
            assert not add_marker("abc").endswith(MARKER)

    def test_add_marker_empty_text(self) -> None:
        assert add_marker("") == MARKER


class TestKeys:
    """Custom key material."""

    def test_defaults(self) -> None:
        assert len(DEFAULT_KEY) == 32
        assert len(DEFAULT_VECTOR) == 16

    def test_wrong_key_length_rejected(self) -> None:
        with pytest.raises(ValueError):
            EncryptionCodec(key=b"short")

    def test_wrong_vector_length_rejected(self) -> None:
        with pytest.raises(ValueError):
            EncryptionCodec(vector=b"short")

    def test_passphrase_codec_roundtrip(self) -> None:
        codec = EncryptionCodec.from_passphrase("correct horse battery staple")
        assert codec.decrypt(codec.encrypt("secret")) == "secret"

    def test_passphrase_changes_ciphertext(self, codec: EncryptionCodec) -> None:
        other = EncryptionCodec.from_passphrase("correct horse battery staple")
        plain_default = codec.encrypt("secret").replace(MARKER, "")
        plain_other = other.encrypt("secret").replace(MARKER, "")
        assert plain_default != plain_other

    def test_same_passphrase_same_key(self) -> None:
        first = EncryptionCodec.from_passphrase("pass")
        second = EncryptionCodec.from_passphrase("pass")
        assert second.decrypt(first.encrypt("secret")) == "secret"
