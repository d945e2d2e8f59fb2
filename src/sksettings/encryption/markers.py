"""
Field markers that steer the encryption walk.

Markers are ``typing.Annotated`` metadata:

    class MailSettings(Settings):
        password: Annotated[str, Encrypt()] = ""
        proxy: Annotated[ProxySettings, EncryptDoNotFollow()] = ...
        vendor: Annotated[VendorConfig, EncryptForceFollow()] = ...
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable


class EncryptMarker(str, Enum):
    """Kinds of encryption metadata a field can carry."""

    ENCRYPT = "encrypt"
    DO_NOT_FOLLOW = "do-not-follow"
    FORCE_FOLLOW = "force-follow"


class _Marker:
    kind: EncryptMarker

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Marker) and other.kind == self.kind

    def __hash__(self) -> int:
        return hash(self.kind)


class Encrypt(_Marker):
    """The field is stored encrypted."""

    kind = EncryptMarker.ENCRYPT


class EncryptDoNotFollow(_Marker):
    """Never descend into this field, even if it looks nested."""

    kind = EncryptMarker.DO_NOT_FOLLOW


class EncryptForceFollow(_Marker):
    """Descend into this field, even if it does not look nested."""

    kind = EncryptMarker.FORCE_FOLLOW


def markers_of(metadata: Iterable[Any]) -> frozenset[EncryptMarker]:
    """Collect the marker kinds found in ``Annotated`` metadata."""
    return frozenset(item.kind for item in metadata if isinstance(item, _Marker))
