"""
Vault Crypto Core — Hybrid envelope encryption and value serialization.

Every call to ``EnvelopeCipher.encrypt`` draws a fresh content key and IV:
- Bulk layer: AES-256-GCM(content_key, iv) → encryptedData + authTag
- Wrap layer: RSA-OAEP(public_key, content_key) → encryptedKey
              RSA-OAEP(public_key, iv) → encryptedIV

All four envelope fields are base64 text, safe for any text column and for
JSON at the API boundary.

Security Note:
    Never log plaintext, ciphertext, content keys or IVs.
    GCM verifies the tag before any plaintext is returned.
"""
import os
import base64
import binascii
from typing import Any, Union

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, Field

from .config import oaep_hash
from .exceptions import (
    AuthenticationFailure,
    DecryptionFailure,
    DecryptionKeyUnavailable,
    EncryptionFailure,
    EncryptionKeyUnavailable,
)
from .keys import KeyMaterialProvider

KEY_SIZE = 32  # AES-256
IV_SIZE = 16  # 128-bit IV
TAG_SIZE = 16  # 128-bit GCM tag

_BYTES_MARKER = "$envelope_bytes"


class Envelope(BaseModel):
    """The four base64 fields produced by a single ``encrypt`` call.

    Serialized with camelCase names (``encryptedData``, ``encryptedKey``,
    ``encryptedIV``, ``authTag``); attribute access uses snake_case.
    """

    encrypted_data: str = Field(alias="encryptedData")
    encrypted_key: str = Field(alias="encryptedKey")
    encrypted_iv: str = Field(alias="encryptedIV")
    auth_tag: str = Field(alias="authTag")

    model_config = {"frozen": True, "populate_by_name": True}

    def to_dict(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Envelope":
        return cls.model_validate(data)


def _b64e(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64d(value: str) -> bytes:
    return base64.b64decode(value, validate=True)


def _as_bytes(plaintext: Union[bytes, str]) -> bytes:
    if isinstance(plaintext, str):
        return plaintext.encode("utf-8")
    if isinstance(plaintext, (bytes, bytearray, memoryview)):
        return bytes(plaintext)
    raise TypeError(
        f"plaintext must be bytes or str, got {type(plaintext).__name__}; "
        "use serialize_value() for structured data"
    )


class EnvelopeCipher:
    """AES-256-GCM + RSA-OAEP envelope cipher.

    Stateless apart from the injected key provider, so a single instance can
    be shared by any number of concurrent callers.
    """

    def __init__(self, keys: KeyMaterialProvider, oaep_hash_name: str = "sha256"):
        self._keys = keys
        # validate eagerly, a fresh hash object is built per call
        oaep_hash(oaep_hash_name)
        self._oaep_hash_name = oaep_hash_name

    @property
    def keys(self) -> KeyMaterialProvider:
        return self._keys

    def _padding(self) -> padding.OAEP:
        algorithm = oaep_hash(self._oaep_hash_name)
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=algorithm),
            algorithm=algorithm,
            label=None,
        )

    def encrypt(self, plaintext: Union[bytes, str]) -> Envelope:
        """Encrypt plaintext into a new Envelope.

        Args:
            plaintext: Bytes, or a str which is encoded as UTF-8.

        Returns:
            Envelope with all four fields populated.

        Raises:
            TypeError: If plaintext is neither bytes nor str.
            EncryptionKeyUnavailable: If the RSA key pair is not available.
            EncryptionFailure: If the underlying primitives fail.
        """
        data = _as_bytes(plaintext)
        if not self._keys.available():
            raise EncryptionKeyUnavailable()
        public_key = self._keys.public_key()

        content_key = os.urandom(KEY_SIZE)
        iv = os.urandom(IV_SIZE)
        try:
            sealed = AESGCM(content_key).encrypt(iv, data, None)
            encrypted_key = public_key.encrypt(content_key, self._padding())
            encrypted_iv = public_key.encrypt(iv, self._padding())
        except (ValueError, TypeError, OverflowError) as err:
            raise EncryptionFailure("Failed to encrypt data") from err

        return Envelope(
            encrypted_data=_b64e(sealed[:-TAG_SIZE]),
            encrypted_key=_b64e(encrypted_key),
            encrypted_iv=_b64e(encrypted_iv),
            auth_tag=_b64e(sealed[-TAG_SIZE:]),
        )

    def decrypt(self, envelope: Envelope) -> bytes:
        """Authenticate and decrypt an Envelope.

        Args:
            envelope: Envelope produced by :meth:`encrypt`.

        Returns:
            The original plaintext bytes.

        Raises:
            DecryptionKeyUnavailable: If the RSA key pair is not available.
            DecryptionFailure: If a field is malformed or the key/IV wrap
                cannot be opened.
            AuthenticationFailure: If the GCM tag does not verify.
        """
        if not self._keys.available():
            raise DecryptionKeyUnavailable()
        private_key = self._keys.private_key()

        try:
            ciphertext = _b64d(envelope.encrypted_data)
            wrapped_key = _b64d(envelope.encrypted_key)
            wrapped_iv = _b64d(envelope.encrypted_iv)
            tag = _b64d(envelope.auth_tag)
        except (binascii.Error, ValueError) as err:
            raise DecryptionFailure("Malformed envelope") from err
        if len(tag) != TAG_SIZE:
            raise DecryptionFailure("Malformed envelope")

        try:
            content_key = private_key.decrypt(wrapped_key, self._padding())
            iv = private_key.decrypt(wrapped_iv, self._padding())
        except ValueError as err:
            raise DecryptionFailure("Failed to decrypt data") from err
        if len(content_key) != KEY_SIZE or len(iv) != IV_SIZE:
            raise DecryptionFailure("Failed to decrypt data")

        try:
            return AESGCM(content_key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag:
            raise AuthenticationFailure() from None


# ---------------------------------------------------------------------------
# Structured payloads
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Turn a structured secret (e.g. a payment instruction dict) into the
    byte string handed to ``EnvelopeCipher.encrypt``.

    A top-level ``bytes`` value is carried as ``{"$envelope_bytes": <b64>}``
    since JSON has no binary type. Nested bytes are not supported.
    """
    if isinstance(value, bytes):
        value = {_BYTES_MARKER: _b64e(value)}
    return orjson.dumps(value)


def deserialize_value(data: bytes) -> Any:
    """Inverse of ``serialize_value``, applied to ``EnvelopeCipher.decrypt`` output."""
    value = orjson.loads(data)
    if isinstance(value, dict) and list(value) == [_BYTES_MARKER]:
        return _b64d(value[_BYTES_MARKER])
    return value
