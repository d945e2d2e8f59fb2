"""
Field-level encryption for settings.

Mark string fields with ``Annotated[str, Encrypt()]`` and wrap a manager
with ``apply_encryption``. The stored data holds ciphertext, the loaded
instance holds plaintext.
"""

from .codec import MARKER, EncryptionCodec
from .manager import EncryptingSettingsManager, apply_encryption
from .markers import Encrypt, EncryptDoNotFollow, EncryptForceFollow, EncryptMarker
from .walker import PropertyDescriptor, PropertyWalker, walk

__all__ = [
    "MARKER",
    "Encrypt",
    "EncryptDoNotFollow",
    "EncryptForceFollow",
    "EncryptMarker",
    "EncryptingSettingsManager",
    "EncryptionCodec",
    "PropertyDescriptor",
    "PropertyWalker",
    "apply_encryption",
    "walk",
]
