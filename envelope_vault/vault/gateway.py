"""
Secret Gateway — Persistence of envelopes by opaque identifier.

The gateway only ever sees ciphertext envelopes; it never holds keys or
plaintext. Two implementations are provided:

- ``MemorySecretGateway`` — process-local dict, for tests and single-node demos
- ``PostgresSecretGateway`` — asyncpg-compatible pool, table ``vault.secrets``::

    CREATE TABLE vault.secrets (
        id             text PRIMARY KEY,
        encrypted_data text NOT NULL,
        encrypted_key  text NOT NULL,
        encrypted_iv   text NOT NULL,
        auth_tag       text NOT NULL,
        title          text,
        created_at     timestamptz NOT NULL DEFAULT NOW(),
        expires_at     timestamptz
    );
"""
import re
import uuid
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel

from .crypto import Envelope
from .exceptions import SecretNotFound

logger = logging.getLogger("envelope_vault.vault")

SECRET_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_secret_id() -> str:
    return uuid.uuid4().hex


def is_valid_secret_id(secret_id: str) -> bool:
    return bool(SECRET_ID_PATTERN.match(secret_id))


class SecretRecord(BaseModel):
    """An envelope as persisted, plus identifier and timestamps."""

    id: str
    envelope: Envelope
    title: Optional[str] = None
    created_at: datetime
    expires_at: Optional[datetime] = None

    model_config = {"frozen": True}

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expires_at < now


class SecretRecordGateway(ABC):
    """Storage contract consumed by the secret service."""

    @abstractmethod
    async def save(
        self,
        envelope: Envelope,
        *,
        title: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Persist an envelope and return its new identifier."""

    @abstractmethod
    async def find_by_id(self, secret_id: str) -> SecretRecord:
        """Return the record for ``secret_id``.

        Raises:
            SecretNotFound: If no such record exists.
        """

    @abstractmethod
    async def delete(self, secret_id: str) -> bool:
        """Remove a record. Returns True if something was deleted."""

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def oldest(self) -> Optional[SecretRecord]:
        ...


class MemorySecretGateway(SecretRecordGateway):
    """In-process gateway backed by a dict."""

    def __init__(self):
        self._records: dict[str, SecretRecord] = {}
        self._lock = asyncio.Lock()

    async def save(
        self,
        envelope: Envelope,
        *,
        title: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> str:
        record = SecretRecord(
            id=new_secret_id(),
            envelope=envelope,
            title=title,
            created_at=datetime.now(timezone.utc),
            expires_at=expires_at,
        )
        async with self._lock:
            self._records[record.id] = record
        return record.id

    async def find_by_id(self, secret_id: str) -> SecretRecord:
        record = self._records.get(secret_id)
        if record is None:
            raise SecretNotFound()
        return record

    async def delete(self, secret_id: str) -> bool:
        async with self._lock:
            return self._records.pop(secret_id, None) is not None

    async def count(self) -> int:
        return len(self._records)

    async def oldest(self) -> Optional[SecretRecord]:
        if not self._records:
            return None
        return min(self._records.values(), key=lambda r: r.created_at)


# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_SECRET = """
INSERT INTO vault.secrets
    (id, encrypted_data, encrypted_key, encrypted_iv, auth_tag, title, expires_at)
VALUES ($1, $2, $3, $4, $5, $6, $7)
"""

_SELECT_SECRET = """
SELECT id, encrypted_data, encrypted_key, encrypted_iv, auth_tag,
       title, created_at, expires_at
FROM vault.secrets
WHERE id = $1
"""

_DELETE_SECRET = """
DELETE FROM vault.secrets WHERE id = $1 RETURNING id
"""

_COUNT_SECRETS = """
SELECT COUNT(*) FROM vault.secrets
"""

_SELECT_OLDEST = """
SELECT id, encrypted_data, encrypted_key, encrypted_iv, auth_tag,
       title, created_at, expires_at
FROM vault.secrets
ORDER BY created_at
LIMIT 1
"""


class PostgresSecretGateway(SecretRecordGateway):
    """Gateway over an asyncpg-compatible connection pool."""

    def __init__(self, db_pool: Any):
        self._db = db_pool

    @staticmethod
    def _to_record(row: Any) -> SecretRecord:
        return SecretRecord(
            id=row["id"],
            envelope=Envelope(
                encrypted_data=row["encrypted_data"],
                encrypted_key=row["encrypted_key"],
                encrypted_iv=row["encrypted_iv"],
                auth_tag=row["auth_tag"],
            ),
            title=row["title"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    async def save(
        self,
        envelope: Envelope,
        *,
        title: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> str:
        secret_id = new_secret_id()
        async with self._db.acquire() as conn:
            await conn.execute(
                _INSERT_SECRET,
                secret_id,
                envelope.encrypted_data,
                envelope.encrypted_key,
                envelope.encrypted_iv,
                envelope.auth_tag,
                title,
                expires_at,
            )
        logger.debug("Secret saved: id=%s", secret_id)
        return secret_id

    async def find_by_id(self, secret_id: str) -> SecretRecord:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_SECRET, secret_id)
        if row is None:
            raise SecretNotFound()
        return self._to_record(row)

    async def delete(self, secret_id: str) -> bool:
        async with self._db.acquire() as conn:
            deleted = await conn.fetchval(_DELETE_SECRET, secret_id)
        return deleted is not None

    async def count(self) -> int:
        async with self._db.acquire() as conn:
            return int(await conn.fetchval(_COUNT_SECRETS))

    async def oldest(self) -> Optional[SecretRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_OLDEST)
        return self._to_record(row) if row is not None else None
