"""
Shared test configuration and fixtures for credential model tests.

Tests run against PostgreSQL when TEST_DB_HOST is set and reachable, and
against a throwaway SQLite file otherwise.
"""

import os
import uuid
import pytest
import pytest_asyncio
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from social.graze.credmodel.model import CredentialModel
from social.graze.credmodel.password import BcryptPasswordHasher
from social.graze.credmodel.store import CredentialStore
from social.graze.credmodel.users import SQLAlchemyUserRepository
from tests.test_helpers import (
    RecordingMetricsClient,
    TEST_ISSUER,
    create_test_client,
    create_test_user,
)


TEST_DB_HOST = os.getenv("TEST_DB_HOST", "")
TEST_DB_PORT = os.getenv("TEST_DB_PORT", "5432")
TEST_DB_USER = os.getenv("TEST_DB_USER", "postgres")
TEST_DB_PASSWORD = os.getenv("TEST_DB_PASSWORD", "password")

ADMIN_DATABASE_URL = f"postgresql+asyncpg://{TEST_DB_USER}:{TEST_DB_PASSWORD}@{TEST_DB_HOST}:{TEST_DB_PORT}/postgres"


async def check_postgres_available():
    """Check if PostgreSQL is configured and reachable."""
    if not TEST_DB_HOST:
        return False
    try:
        admin_engine = create_async_engine(ADMIN_DATABASE_URL, echo=False)
        async with admin_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        await admin_engine.dispose()
        return True
    except Exception:
        return False


@pytest_asyncio.fixture(scope="function")
async def test_database(tmp_path):
    """Create and clean up a test database for each test function."""
    if not await check_postgres_available():
        yield f"sqlite+aiosqlite:///{tmp_path / 'credmodel.db'}"
        return

    unique_db_name = f"credmodel_test_{uuid.uuid4().hex[:8]}"
    unique_db_url = (
        f"postgresql+asyncpg://{TEST_DB_USER}:{TEST_DB_PASSWORD}@"
        f"{TEST_DB_HOST}:{TEST_DB_PORT}/{unique_db_name}"
    )

    admin_engine = create_async_engine(
        ADMIN_DATABASE_URL, echo=False, isolation_level="AUTOCOMMIT"
    )

    try:
        async with admin_engine.connect() as conn:
            await conn.execute(text(f"CREATE DATABASE {unique_db_name}"))

        yield unique_db_url

    finally:
        async with admin_engine.connect() as conn:
            await conn.execute(text(f"DROP DATABASE IF EXISTS {unique_db_name}"))
        await admin_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def engine(test_database):
    """Create an async engine with every credential table created."""
    engine = create_async_engine(test_database, echo=False)

    if engine.dialect.name == "sqlite":
        # Take the write lock up front so concurrent deletes queue on the
        # busy timeout instead of failing with "database is locked".
        @event.listens_for(engine.sync_engine, "connect")
        def do_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def do_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    await CredentialStore.from_engine(engine).create_all()

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker):
    """Create async database session for testing."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def store(session_maker):
    return CredentialStore(session_maker)


@pytest.fixture
def user_repository(session_maker):
    return SQLAlchemyUserRepository(session_maker)


@pytest.fixture
def password_hasher():
    # Minimum bcrypt work factor keeps the suite fast.
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def metrics_client():
    return RecordingMetricsClient()


@pytest.fixture
def credential_model(store, user_repository, password_hasher, metrics_client):
    return CredentialModel(
        {"issuer": TEST_ISSUER, "user_model": user_repository},
        store=store,
        password_hasher=password_hasher,
        metrics=metrics_client,
    )


@pytest_asyncio.fixture
async def registered_user(session, password_hasher):
    return await create_test_user(session, password_hasher, password="hunter2")


@pytest_asyncio.fixture
async def registered_client(store, registered_user):
    return await create_test_client(store, user_id=registered_user.guid)
