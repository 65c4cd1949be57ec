# Overview: AES-256-GCM field encryption with an injected key provider.

"""
Field-level encryption for sensitive columns.

Stored form is a small JSON envelope::

    {"encrypted": "<hex>", "iv": "<hex>", "tag": "<hex>", "version": "v1"}

The field type (e.g. "email", "id_number") is bound as associated data, so
an envelope copied from one column into another fails authentication
instead of decrypting.

Keys come from a KeyProvider passed in by the caller. The Flask app builds a
StaticKeyProvider from config at startup; tests build their own.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from typing import Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

AAD_PREFIX = "justsell-pos-"
IV_BYTES = 12
TAG_BYTES = 16
KEY_BYTES = 32


class DecryptionError(Exception):
    """Raised when an envelope cannot be authenticated or decrypted."""


class KeyProvider(Protocol):
    current_version: str

    def get_key(self, version: str) -> bytes:
        ...


class StaticKeyProvider:
    """
    Fixed set of versioned keys.

    keys maps version -> 32-byte key (bytes or 64-char hex). New envelopes
    use current_version; old versions stay readable for rotation.
    """

    def __init__(self, keys: dict, current_version: str):
        if current_version not in keys:
            raise ValueError(f"No key configured for version {current_version!r}")
        self._keys = {version: _coerce_key(key) for version, key in keys.items()}
        self.current_version = current_version

    def get_key(self, version: str) -> bytes:
        try:
            return self._keys[version]
        except KeyError:
            raise DecryptionError(f"Unknown key version {version!r}") from None


def _coerce_key(key) -> bytes:
    if isinstance(key, str):
        key = bytes.fromhex(key)
    if len(key) != KEY_BYTES:
        raise ValueError("Field encryption keys must be 32 bytes (64 hex characters)")
    return key


@dataclass(frozen=True)
class EncryptedField:
    encrypted: str
    iv: str
    tag: str
    version: str

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"), sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "EncryptedField | None":
        """Parse an envelope; None when raw is not one (legacy plaintext)."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        if not isinstance(data.get("encrypted"), str):
            return None
        # Ciphertext of an empty string is empty; iv and tag never are
        if not all(isinstance(data.get(key), str) and data[key] for key in ("iv", "tag")):
            return None
        return cls(
            encrypted=data["encrypted"],
            iv=data["iv"],
            tag=data["tag"],
            version=str(data.get("version") or "v1"),
        )


class FieldCipher:
    def __init__(self, key_provider: KeyProvider):
        self.key_provider = key_provider

    @staticmethod
    def _aad(field_type: str) -> bytes:
        return f"{AAD_PREFIX}{field_type}".encode("utf-8")

    def encrypt(self, plaintext: str, field_type: str = "general") -> EncryptedField:
        version = self.key_provider.current_version
        aesgcm = AESGCM(self.key_provider.get_key(version))
        iv = os.urandom(IV_BYTES)
        # AESGCM appends the 16-byte tag to the ciphertext
        sealed = aesgcm.encrypt(iv, plaintext.encode("utf-8"), self._aad(field_type))
        return EncryptedField(
            encrypted=sealed[:-TAG_BYTES].hex(),
            iv=iv.hex(),
            tag=sealed[-TAG_BYTES:].hex(),
            version=version,
        )

    def decrypt(self, field: EncryptedField, field_type: str = "general") -> str:
        try:
            iv = bytes.fromhex(field.iv)
            sealed = bytes.fromhex(field.encrypted) + bytes.fromhex(field.tag)
        except ValueError as exc:
            raise DecryptionError("Malformed encrypted field") from exc
        if len(iv) != IV_BYTES:
            raise DecryptionError("Malformed encrypted field")

        aesgcm = AESGCM(self.key_provider.get_key(field.version))
        try:
            plaintext = aesgcm.decrypt(iv, sealed, self._aad(field_type))
        except InvalidTag as exc:
            raise DecryptionError(f"Failed to decrypt {field_type} field") from exc
        return plaintext.decode("utf-8")

    def wrap(self, plaintext: str | None, field_type: str = "general") -> str | None:
        """Encrypt and serialize for a Text column. None stays None."""
        if plaintext is None:
            return None
        return self.encrypt(plaintext, field_type).to_json()

    def unwrap(self, stored: str | None, field_type: str = "general") -> str | None:
        """
        Inverse of wrap().

        Values that are not an envelope are pre-encryption legacy data and
        are returned unchanged. An envelope that fails authentication raises
        DecryptionError.
        """
        if stored is None:
            return None
        field = EncryptedField.from_json(stored)
        if field is None:
            return stored
        return self.decrypt(field, field_type)

    def is_encrypted(self, stored: str | None) -> bool:
        return stored is not None and EncryptedField.from_json(stored) is not None
