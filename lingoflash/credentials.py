"""Credential vault and encrypted credential storage.

Responsibilities:
- Encrypt provider API keys with a password-derived AES-GCM-256 key.
- Persist the encrypted blob and its installation password as one pair.
- Never store, log, or echo plaintext secrets.

Key types:
- `EncryptedBlob`: salt, IV, and ciphertext of one encrypted secret.
- `CredentialVault`: PBKDF2 key derivation plus authenticated encryption.
- `CredentialStore`: key-value persistence of per-provider encrypted keys.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
import os
import secrets
from typing import Any, Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptionError
from .io.storage import KeyValueStore
from .models.datatypes import ProviderKind
from .parsing import normalize_optional_string


PBKDF2_ITERATIONS = 100_000
SALT_BYTES = 16
IV_BYTES = 12
KEY_BYTES = 32
INSTALLATION_PASSWORD_BYTES = 32

INSTALLATION_PASSWORD_KEY = "installation_password"
_ENCRYPTED_KEY_FIELDS = {
    ProviderKind.OPENAI: "encrypted_api_key",
    ProviderKind.GOOGLE: "encrypted_google_api_key",
}


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: Any, field_name: str) -> bytes:
    if not isinstance(value, str):
        raise DecryptionError(f"Encrypted credential field `{field_name}` is malformed.")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise DecryptionError(
            f"Encrypted credential field `{field_name}` is malformed."
        ) from exc


@dataclass(frozen=True, slots=True)
class EncryptedBlob:
    """Encrypted form of one provider secret.

    Attributes:
        salt: 16-byte PBKDF2 salt.
        iv: 12-byte AES-GCM nonce.
        ciphertext: AES-GCM output including the authentication tag.
    """

    salt: bytes
    iv: bytes
    ciphertext: bytes

    def to_record(self) -> dict[str, str]:
        """Return a JSON-safe storage payload."""

        return {
            "salt": _b64encode(self.salt),
            "iv": _b64encode(self.iv),
            "encrypted": _b64encode(self.ciphertext),
        }

    @classmethod
    def from_record(cls, record: Any) -> EncryptedBlob:
        """Parse a stored payload, raising `DecryptionError` when malformed."""

        if not isinstance(record, Mapping):
            raise DecryptionError("Encrypted credential record is malformed.")
        return cls(
            salt=_b64decode(record.get("salt"), "salt"),
            iv=_b64decode(record.get("iv"), "iv"),
            ciphertext=_b64decode(record.get("encrypted"), "encrypted"),
        )


@dataclass(frozen=True, slots=True)
class CredentialVault:
    """Password-based authenticated encryption for provider secrets."""

    iterations: int = PBKDF2_ITERATIONS

    @staticmethod
    def generate_installation_password() -> str:
        """Return a fresh random installation password (32 bytes, hex-encoded)."""

        return secrets.token_hex(INSTALLATION_PASSWORD_BYTES)

    def derive_password_key(self, password: str, salt: bytes) -> bytes:
        """Stretch `password` with PBKDF2-HMAC-SHA256 into AES-256 key material."""

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_BYTES,
            salt=salt,
            iterations=self.iterations,
        )
        return kdf.derive(password.encode("utf-8"))

    def encrypt(self, secret: str, password: str) -> EncryptedBlob:
        """Encrypt `secret` with a fresh salt and IV on every call."""

        if not secret:
            raise ValueError("Secret must be a non-empty string.")
        if not password:
            raise ValueError("Password must be a non-empty string.")

        salt = os.urandom(SALT_BYTES)
        iv = os.urandom(IV_BYTES)
        key = self.derive_password_key(password, salt)
        ciphertext = AESGCM(key).encrypt(iv, secret.encode("utf-8"), None)
        return EncryptedBlob(salt=salt, iv=iv, ciphertext=ciphertext)

    def decrypt(self, blob: EncryptedBlob, password: str) -> str:
        """Decrypt `blob`, raising `DecryptionError` on any authentication failure."""

        if not password:
            raise DecryptionError()
        try:
            key = self.derive_password_key(password, blob.salt)
            plaintext = AESGCM(key).decrypt(blob.iv, blob.ciphertext, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as exc:
            raise DecryptionError() from exc


@dataclass(slots=True)
class CredentialStore:
    """Persist per-provider encrypted API keys in a key-value store.

    Storing a key generates a new installation password and writes the
    password, the new blob, and a cleared blob for the other provider in a
    single `set` call.
    """

    storage: KeyValueStore
    vault: CredentialVault = field(default_factory=CredentialVault)

    @staticmethod
    def field_for(provider: ProviderKind) -> str:
        """Return the storage key holding the encrypted key for `provider`."""

        return _ENCRYPTED_KEY_FIELDS[provider]

    def store_credential(
        self,
        provider: ProviderKind,
        secret: str,
        extra_values: Mapping[str, Any] | None = None,
    ) -> None:
        """Encrypt and persist `secret`, replacing the password/blob pair."""

        normalized = normalize_optional_string(secret)
        if normalized is None:
            raise ValueError("API key must be a non-empty string.")

        password = self.vault.generate_installation_password()
        blob = self.vault.encrypt(normalized, password)
        update: dict[str, Any] = {
            self.field_for(other): None for other in ProviderKind if other is not provider
        }
        update[self.field_for(provider)] = blob.to_record()
        update[INSTALLATION_PASSWORD_KEY] = password
        if extra_values:
            update.update(extra_values)
        self.storage.set(update)

    def load_credential(self, provider: ProviderKind) -> str | None:
        """Return the decrypted key for `provider`, or `None` when none is stored.

        Raises:
            DecryptionError: If a stored blob exists but cannot be decrypted.
        """

        field_name = self.field_for(provider)
        stored = self.storage.get([field_name, INSTALLATION_PASSWORD_KEY])
        record = stored.get(field_name)
        password = stored.get(INSTALLATION_PASSWORD_KEY)
        if not record or not password:
            return None
        blob = EncryptedBlob.from_record(record)
        return self.vault.decrypt(blob, str(password))

    def has_credential(self, provider: ProviderKind) -> bool:
        """Return whether an encrypted key and password are stored for `provider`."""

        field_name = self.field_for(provider)
        stored = self.storage.get([field_name, INSTALLATION_PASSWORD_KEY])
        return bool(stored.get(field_name)) and bool(stored.get(INSTALLATION_PASSWORD_KEY))

    def clear_credential(self, provider: ProviderKind) -> bool:
        """Remove the stored key for `provider` and report whether one existed."""

        existed = self.has_credential(provider)
        if existed:
            self.storage.set({self.field_for(provider): None})
        return existed
