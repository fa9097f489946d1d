"""
Tests for the secret gateways.

The PostgreSQL gateway is exercised against a small in-memory stand-in for an
asyncpg pool that understands the gateway's own statements.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from envelope_vault.vault import (
    Envelope,
    MemorySecretGateway,
    PostgresSecretGateway,
    SecretNotFound,
)
from envelope_vault.vault import gateway as gw
from envelope_vault.vault.gateway import is_valid_secret_id


def make_envelope(tag: str = "dGFn") -> Envelope:
    return Envelope(
        encrypted_data="ZGF0YQ==",
        encrypted_key="a2V5",
        encrypted_iv="aXY=",
        auth_tag=tag,
    )


class FakeConnection:
    """Executes the gateway statements against a dict of rows."""

    def __init__(self, rows: dict):
        self.rows = rows

    async def execute(self, query, *args):
        if query != gw._INSERT_SECRET:
            raise AssertionError(f"unexpected query: {query}")
        secret_id, data, key, iv, tag, title, expires_at = args
        self.rows[secret_id] = {
            "id": secret_id,
            "encrypted_data": data,
            "encrypted_key": key,
            "encrypted_iv": iv,
            "auth_tag": tag,
            "title": title,
            "created_at": datetime.now(timezone.utc),
            "expires_at": expires_at,
        }
        return "INSERT 0 1"

    async def fetchrow(self, query, *args):
        if query == gw._SELECT_SECRET:
            return self.rows.get(args[0])
        if query == gw._SELECT_OLDEST:
            if not self.rows:
                return None
            return min(self.rows.values(), key=lambda r: r["created_at"])
        raise AssertionError(f"unexpected query: {query}")

    async def fetchval(self, query, *args):
        if query == gw._DELETE_SECRET:
            row = self.rows.pop(args[0], None)
            return row["id"] if row else None
        if query == gw._COUNT_SECRETS:
            return len(self.rows)
        raise AssertionError(f"unexpected query: {query}")


class FakeAcquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc):
        return False


class FakePool:
    def __init__(self):
        self.rows = {}
        self.acquired = 0

    def acquire(self):
        self.acquired += 1
        return FakeAcquire(FakeConnection(self.rows))


@pytest.fixture(params=["memory", "postgres"])
def gateway(request):
    if request.param == "memory":
        return MemorySecretGateway()
    return PostgresSecretGateway(FakePool())


class TestGatewayContract:
    """Both implementations honour the same contract."""

    def test_save_and_find(self, gateway):
        async def scenario():
            expires = datetime.now(timezone.utc) + timedelta(hours=1)
            secret_id = await gateway.save(make_envelope(), title="rent", expires_at=expires)
            record = await gateway.find_by_id(secret_id)
            return secret_id, expires, record

        secret_id, expires, record = asyncio.run(scenario())
        assert is_valid_secret_id(secret_id)
        assert record.id == secret_id
        assert record.envelope == make_envelope()
        assert record.title == "rent"
        assert record.expires_at == expires
        assert record.created_at.tzinfo is not None

    def test_find_missing(self, gateway):
        with pytest.raises(SecretNotFound):
            asyncio.run(gateway.find_by_id("0" * 32))

    def test_delete(self, gateway):
        async def scenario():
            secret_id = await gateway.save(make_envelope())
            first = await gateway.delete(secret_id)
            second = await gateway.delete(secret_id)
            with pytest.raises(SecretNotFound):
                await gateway.find_by_id(secret_id)
            return first, second

        assert asyncio.run(scenario()) == (True, False)

    def test_concurrent_delete_succeeds_once(self, gateway):
        async def scenario():
            secret_id = await gateway.save(make_envelope())
            return await asyncio.gather(*(gateway.delete(secret_id) for _ in range(5)))

        assert sorted(asyncio.run(scenario())) == [False, False, False, False, True]

    def test_insert_does_not_fetch_rows(self):
        """Saving writes with ``execute``; the insert returns nothing to read back."""
        pool = FakePool()
        gateway = PostgresSecretGateway(pool)
        secret_id = asyncio.run(gateway.save(make_envelope()))
        assert "RETURNING" not in gw._INSERT_SECRET
        assert list(pool.rows) == [secret_id]

    def test_count_and_oldest(self, gateway):
        async def scenario():
            assert await gateway.count() == 0
            assert await gateway.oldest() is None
            first = await gateway.save(make_envelope("Zmlyc3Q="))
            await asyncio.sleep(0.001)
            await gateway.save(make_envelope("c2Vjb25k"))
            return first, await gateway.count(), await gateway.oldest()

        first, total, oldest = asyncio.run(scenario())
        assert total == 2
        assert oldest.id == first

    def test_ids_are_unique(self, gateway):
        async def scenario():
            return {await gateway.save(make_envelope()) for _ in range(20)}

        assert len(asyncio.run(scenario())) == 20


class TestSecretRecord:
    def test_expiry(self):
        now = datetime.now(timezone.utc)

        async def scenario():
            gateway = MemorySecretGateway()
            past = await gateway.save(make_envelope(), expires_at=now - timedelta(seconds=1))
            future = await gateway.save(make_envelope(), expires_at=now + timedelta(hours=1))
            never = await gateway.save(make_envelope())
            return [await gateway.find_by_id(i) for i in (past, future, never)]

        past, future, never = asyncio.run(scenario())
        assert past.is_expired() is True
        assert future.is_expired() is False
        assert never.is_expired() is False


class TestSecretIds:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0123456789abcdef0123456789abcdef", True),
            ("0123456789ABCDEF0123456789ABCDEF", False),
            ("507f1f77bcf86cd799439011", False),
            ("../../etc/passwd", False),
            ("", False),
        ],
    )
    def test_is_valid_secret_id(self, value, expected):
        assert is_valid_secret_id(value) is expected
