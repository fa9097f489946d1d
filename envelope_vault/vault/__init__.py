"""Envelope Vault — Hybrid AES-256-GCM + RSA-OAEP protection of secrets at rest.

Security Note (Threat Model):
    The database only ever holds envelopes. Recovering a secret requires the
    RSA private key, which is read from disk and kept in process memory.
    A memory dump of the application process could expose that key.
    This is an accepted limitation — mitigation requires HSM/KMS
    integration which is out of scope.
"""

from .config import KeyConfig, VaultConfig
from .crypto import Envelope, EnvelopeCipher, serialize_value, deserialize_value
from .exceptions import (
    VaultError,
    KeyUnavailable,
    EncryptionKeyUnavailable,
    DecryptionKeyUnavailable,
    CipherError,
    EncryptionFailure,
    DecryptionFailure,
    AuthenticationFailure,
    SecretStoreError,
    SecretNotFound,
    SecretExpired,
)
from .gateway import (
    SecretRecord,
    SecretRecordGateway,
    MemorySecretGateway,
    PostgresSecretGateway,
)
from .keys import KeyMaterialProvider
from .service import SecretService

__all__ = [
    "KeyConfig",
    "VaultConfig",
    "Envelope",
    "EnvelopeCipher",
    "serialize_value",
    "deserialize_value",
    "KeyMaterialProvider",
    "SecretRecord",
    "SecretRecordGateway",
    "MemorySecretGateway",
    "PostgresSecretGateway",
    "SecretService",
    "VaultError",
    "KeyUnavailable",
    "EncryptionKeyUnavailable",
    "DecryptionKeyUnavailable",
    "CipherError",
    "EncryptionFailure",
    "DecryptionFailure",
    "AuthenticationFailure",
    "SecretStoreError",
    "SecretNotFound",
    "SecretExpired",
]
