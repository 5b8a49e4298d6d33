"""
Unit tests for CredentialStore.

Tests cover lookups by natural key, uniqueness constraints, atomic deletes and
the translation of SQLAlchemy failures into the error taxonomy.
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from social.graze.credmodel.errors import DuplicateRecord, StoreUnavailable
from social.graze.credmodel.store import CredentialStore, as_utc, translate_errors
from tests.test_helpers import (
    TEST_SECRET,
    create_test_client,
    generate_test_datetime,
    generate_ulid_string,
)


async def insert_sample_token(store: CredentialStore, **overrides):
    values = {
        "access_token": "access_" + generate_ulid_string(),
        "access_token_expires_at": generate_test_datetime(60),
        "refresh_token": "refresh_" + generate_ulid_string(),
        "refresh_token_expires_at": generate_test_datetime(600),
        "scope": "read write",
        "client_id": "client_a",
        "user_id": generate_ulid_string(),
    }
    values.update(overrides)
    await store.insert_token(**values)
    return values


async def insert_sample_code(store: CredentialStore, **overrides):
    values = {
        "code": "code_" + generate_ulid_string(),
        "expires_at": generate_test_datetime(5),
        "redirect_uri": "https://app.example.test/callback",
        "scope": "read",
        "client_id": "client_a",
        "user_id": generate_ulid_string(),
    }
    values.update(overrides)
    await store.insert_code(**values)
    return values


class TestClients:
    async def test_find_client(self, store):
        created = await create_test_client(store)
        found = await store.find_client(created.client_id)

        assert found is not None
        assert found.client_secret == TEST_SECRET
        assert found.redirect_uris == ["https://app.example.test/callback"]
        assert "authorization_code" in found.grants

    async def test_find_unknown_client(self, store):
        assert await store.find_client("nobody") is None

    async def test_duplicate_client_id(self, store):
        created = await create_test_client(store)
        with pytest.raises(DuplicateRecord):
            await store.create_client(
                client_id=created.client_id,
                client_secret="other",
                redirect_uris=[],
                grants=[],
                access_token_lifetime=1,
                refresh_token_lifetime=1,
                domain="example.test",
            )


class TestTokens:
    async def test_find_by_access_and_refresh(self, store):
        values = await insert_sample_token(store)

        by_access = await store.find_token_by_access(values["access_token"])
        by_refresh = await store.find_token_by_refresh(values["refresh_token"])

        assert by_access is not None and by_refresh is not None
        assert by_access.guid == by_refresh.guid
        assert as_utc(by_access.access_token_expires_at) == values["access_token_expires_at"]

    async def test_token_without_refresh(self, store):
        values = await insert_sample_token(
            store, refresh_token=None, refresh_token_expires_at=None
        )
        found = await store.find_token_by_access(values["access_token"])
        assert found is not None
        assert found.refresh_token is None

    async def test_duplicate_access_token(self, store):
        values = await insert_sample_token(store)
        with pytest.raises(DuplicateRecord):
            await insert_sample_token(store, access_token=values["access_token"])

    async def test_duplicate_refresh_token(self, store):
        values = await insert_sample_token(store)
        with pytest.raises(DuplicateRecord):
            await insert_sample_token(store, refresh_token=values["refresh_token"])

    async def test_delete_by_refresh_removes_pair(self, store):
        values = await insert_sample_token(store)

        assert await store.delete_token_by_refresh(values["refresh_token"]) is True
        assert await store.find_token_by_access(values["access_token"]) is None
        assert await store.find_token_by_refresh(values["refresh_token"]) is None

    async def test_delete_missing_token(self, store):
        assert await store.delete_token_by_refresh("missing") is False

    @pytest.mark.parametrize("refresh_token", [None, ""])
    async def test_blank_refresh_token_leaves_access_only_rows(self, store, refresh_token):
        values = await insert_sample_token(
            store, refresh_token=None, refresh_token_expires_at=None
        )

        assert await store.find_token_by_refresh(refresh_token) is None
        assert await store.delete_token_by_refresh(refresh_token) is False
        assert await store.find_token_by_access(values["access_token"]) is not None


class TestCodes:
    async def test_find_code(self, store):
        values = await insert_sample_code(store)
        found = await store.find_code(values["code"])

        assert found is not None
        assert found.redirect_uri == values["redirect_uri"]
        assert as_utc(found.expires_at) == values["expires_at"]

    async def test_duplicate_code(self, store):
        values = await insert_sample_code(store)
        with pytest.raises(DuplicateRecord):
            await insert_sample_code(store, code=values["code"])

    async def test_delete_code_once(self, store):
        values = await insert_sample_code(store)

        assert await store.delete_code(values["code"]) is True
        assert await store.delete_code(values["code"]) is False
        assert await store.find_code(values["code"]) is None

    async def test_concurrent_delete_single_winner(self, store):
        values = await insert_sample_code(store)

        results = await asyncio.gather(
            store.delete_code(values["code"]),
            store.delete_code(values["code"]),
        )
        assert sorted(results) == [False, True]


class TestTranslateErrors:
    async def test_operational_error_becomes_store_unavailable(self):
        with pytest.raises(StoreUnavailable) as excinfo:
            async with translate_errors("probe"):
                raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        assert "probe" in str(excinfo.value)

    async def test_os_error_becomes_store_unavailable(self):
        with pytest.raises(StoreUnavailable):
            async with translate_errors("probe"):
                raise ConnectionRefusedError()

    async def test_other_errors_propagate(self):
        with pytest.raises(KeyError):
            async with translate_errors("probe"):
                raise KeyError("boom")

    async def test_unreachable_database(self, tmp_path):
        from sqlalchemy.ext.asyncio import create_async_engine

        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nested' / 'db.sqlite'}"
        )
        try:
            with pytest.raises(StoreUnavailable):
                await CredentialStore.from_engine(engine).find_client("anyone")
        finally:
            await engine.dispose()
