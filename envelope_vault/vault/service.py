"""
SecretService — Store and retrieve one-time secrets.

Provides the public API for the secret store:
- ``store(data, title)`` — encrypt and persist a secret, returns its id
- ``retrieve(secret_id)`` — decrypt a secret, enforcing expiry and one-time read
- ``stats()`` — record count and age of the oldest secret

Encryption and decryption are CPU-bound (RSA) and run on a worker thread so
they never block the event loop.

Security Note:
    Never log plaintext or envelope fields. Only log ids and operations.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .config import VaultConfig
from .crypto import EnvelopeCipher
from .exceptions import DecryptionFailure, SecretExpired, SecretNotFound
from .gateway import SecretRecordGateway

logger = logging.getLogger("envelope_vault.vault")


class SecretService:
    """Glue between the envelope cipher and a secret gateway.

    Retention policy: every secret gets ``expires_at = now + secret_ttl``;
    expired secrets are deleted when somebody tries to read them. With
    ``one_time_read`` the secret is deleted right after a successful read.
    """

    def __init__(
        self,
        cipher: EnvelopeCipher,
        gateway: SecretRecordGateway,
        config: Optional[VaultConfig] = None,
    ):
        self._cipher = cipher
        self._gateway = gateway
        self._config = config or VaultConfig()

    @property
    def cipher(self) -> EnvelopeCipher:
        return self._cipher

    @property
    def gateway(self) -> SecretRecordGateway:
        return self._gateway

    @property
    def config(self) -> VaultConfig:
        return self._config

    async def store(
        self,
        data: str,
        title: Optional[str] = None,
    ) -> dict[str, Any]:
        """Encrypt and persist a secret.

        Args:
            data: Secret payload. Only text is accepted since ``retrieve``
                hands the payload back as ``str``.
            title: Optional human-readable label, stored in clear.

        Returns:
            Dict with ``id``, ``message`` and ``expires_at``.

        Raises:
            TypeError: If ``data`` is not a ``str``.
            EncryptionKeyUnavailable: If the key pair is not available.
            EncryptionFailure: If encryption fails.
        """
        if not isinstance(data, str):
            raise TypeError(
                f"secret data must be str, not {type(data).__name__}"
            )
        envelope = await asyncio.to_thread(self._cipher.encrypt, data)
        expires_at = datetime.now(timezone.utc) + timedelta(
            seconds=self._config.secret_ttl
        )
        secret_id = await self._gateway.save(
            envelope, title=title, expires_at=expires_at,
        )
        logger.info("Secret stored: id=%s", secret_id)
        return {
            "id": secret_id,
            "message": "Secret stored securely",
            "expires_at": expires_at,
        }

    async def retrieve(self, secret_id: str) -> dict[str, Any]:
        """Decrypt and return a secret.

        With ``one_time_read`` the plaintext is released only to the caller
        whose delete actually removed the record; concurrent readers that
        lose that race get ``SecretNotFound``.

        Raises:
            SecretNotFound: If the id is unknown or was already retrieved.
            SecretExpired: If the secret outlived its TTL (it is deleted).
            DecryptionKeyUnavailable: If the key pair is not available.
            DecryptionFailure: If the envelope is malformed, tampered with
                or does not hold text. The record is kept.
        """
        record = await self._gateway.find_by_id(secret_id)

        if record.is_expired():
            await self._gateway.delete(secret_id)
            logger.info("Secret expired and deleted: id=%s", secret_id)
            raise SecretExpired()

        plaintext = await asyncio.to_thread(self._cipher.decrypt, record.envelope)
        try:
            data = plaintext.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Secret payload is not text: id=%s", secret_id)
            raise DecryptionFailure("Stored payload is not text") from None

        if self._config.one_time_read:
            if not await self._gateway.delete(secret_id):
                logger.info("Secret already retrieved: id=%s", secret_id)
                raise SecretNotFound()
            logger.info("Secret retrieved and deleted: id=%s", secret_id)
        else:
            logger.info("Secret retrieved: id=%s", secret_id)

        return {
            "data": data,
            "title": record.title,
            "retrieved_at": datetime.now(timezone.utc),
            "was_created_at": record.created_at,
        }

    async def stats(self) -> dict[str, Any]:
        """Return the number of stored secrets and the oldest one's age in days."""
        total = await self._gateway.count()
        oldest = await self._gateway.oldest()
        age_days = 0
        if oldest is not None:
            age = datetime.now(timezone.utc) - oldest.created_at
            age_days = age.days
        # first access may read and parse the PEM files
        keys_available = await asyncio.to_thread(self._cipher.keys.available)
        return {
            "connected": True,
            "total_secrets": total,
            "oldest_secret_age": age_days,
            "keys_available": keys_available,
        }
