from .field_encryption import (
    DecryptionError,
    EncryptedField,
    FieldCipher,
    KeyProvider,
    StaticKeyProvider,
)

__all__ = [
    "DecryptionError",
    "EncryptedField",
    "FieldCipher",
    "KeyProvider",
    "StaticKeyProvider",
]
