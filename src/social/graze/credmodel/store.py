"""
Credential Store

SQLAlchemy adapter over the client, code and token tables. The store is
constructed explicitly from an `async_sessionmaker` and injected into the
credential model; there is no process-wide connection registry.

Contract:
- Lookups return the ORM row or None. Absence is not an error.
- Inserts are a single statement in their own transaction. A unique index
  violation raises DuplicateRecord.
- Deletes are a single `DELETE ... RETURNING` statement, so of two concurrent
  deletes for the same key exactly one observes True.
- Connection-level failures raise StoreUnavailable and are never retried here.
"""

import contextlib
from datetime import datetime, timezone
import logging
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from ulid import ULID
import sentry_sdk

from social.graze.credmodel.errors import DuplicateRecord, StoreUnavailable
from social.graze.credmodel.schema.base import Base
from social.graze.credmodel.schema.client import OAuth2Client
from social.graze.credmodel.schema.code import AuthorizationCode
from social.graze.credmodel.schema.token import OAuth2Token

# Registers the users table on Base.metadata for create_all.
from social.graze.credmodel.schema import user as _user  # noqa: F401

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes returned by backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@contextlib.asynccontextmanager
async def translate_errors(operation: str) -> AsyncIterator[None]:
    """Map SQLAlchemy failures onto the credential model's error taxonomy."""
    try:
        yield
    except IntegrityError as e:
        logger.warning("Duplicate record during %s", operation)
        raise DuplicateRecord.wrap(operation) from e
    except (OperationalError, InterfaceError, DisconnectionError, OSError) as e:
        sentry_sdk.capture_exception(e)
        logger.exception("Credential store unavailable during %s", operation)
        raise StoreUnavailable.wrap(operation) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            sentry_sdk.capture_exception(e)
            logger.exception("Connection invalidated during %s", operation)
            raise StoreUnavailable.wrap(operation) from e
        raise


class CredentialStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "CredentialStore":
        return cls(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    async def create_all(self) -> None:
        """Create every table known to the schema. Intended for development and tests."""
        async with translate_errors("create_all"):
            async with self._session_maker() as session:
                connection = await session.connection()
                await connection.run_sync(Base.metadata.create_all)
                await session.commit()

    async def _first(self, operation: str, stmt):
        async with translate_errors(operation):
            async with self._session_maker() as session:
                return (await session.scalars(stmt)).first()

    async def find_client(self, client_id: str) -> Optional[OAuth2Client]:
        return await self._first(
            "find_client", select(OAuth2Client).where(OAuth2Client.client_id == client_id)
        )

    async def find_code(self, code: str) -> Optional[AuthorizationCode]:
        return await self._first(
            "find_code", select(AuthorizationCode).where(AuthorizationCode.code == code)
        )

    async def find_token_by_access(self, access_token: str) -> Optional[OAuth2Token]:
        return await self._first(
            "find_token_by_access",
            select(OAuth2Token).where(OAuth2Token.access_token == access_token),
        )

    async def find_token_by_refresh(
        self, refresh_token: Optional[str]
    ) -> Optional[OAuth2Token]:
        if not refresh_token:
            return None
        return await self._first(
            "find_token_by_refresh",
            select(OAuth2Token).where(OAuth2Token.refresh_token == refresh_token),
        )

    async def _insert(self, operation: str, row: Base) -> None:
        async with translate_errors(operation):
            async with self._session_maker() as session:
                async with session.begin():
                    session.add(row)

    async def insert_token(
        self,
        access_token: str,
        access_token_expires_at: datetime,
        refresh_token: Optional[str],
        refresh_token_expires_at: Optional[datetime],
        scope: str,
        client_id: str,
        user_id: str,
    ) -> OAuth2Token:
        row = OAuth2Token(
            guid=str(ULID()),
            access_token=access_token,
            access_token_expires_at=access_token_expires_at,
            refresh_token=refresh_token,
            refresh_token_expires_at=refresh_token_expires_at,
            scope=scope,
            client_id=client_id,
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
        )
        await self._insert("insert_token", row)
        return row

    async def insert_code(
        self,
        code: str,
        expires_at: datetime,
        redirect_uri: str,
        scope: str,
        client_id: str,
        user_id: str,
    ) -> AuthorizationCode:
        row = AuthorizationCode(
            guid=str(ULID()),
            code=code,
            expires_at=expires_at,
            redirect_uri=redirect_uri,
            scope=scope,
            client_id=client_id,
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
        )
        await self._insert("insert_code", row)
        return row

    async def create_client(
        self,
        client_id: str,
        client_secret: str,
        redirect_uris: List[str],
        grants: List[str],
        access_token_lifetime: int,
        refresh_token_lifetime: int,
        domain: str,
        user_id: Optional[str] = None,
    ) -> OAuth2Client:
        """Register a client. Administrative; the credential model never calls this."""
        row = OAuth2Client(
            guid=str(ULID()),
            client_id=client_id,
            client_secret=client_secret,
            redirect_uris=list(redirect_uris),
            grants=list(grants),
            access_token_lifetime=access_token_lifetime,
            refresh_token_lifetime=refresh_token_lifetime,
            domain=domain,
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
        )
        await self._insert("create_client", row)
        return row

    async def _delete(self, operation: str, stmt) -> bool:
        async with translate_errors(operation):
            async with self._session_maker() as session:
                async with session.begin():
                    deleted = (await session.execute(stmt)).scalars().all()
        return len(deleted) > 0

    async def delete_code(self, code: str) -> bool:
        return await self._delete(
            "delete_code",
            delete(AuthorizationCode)
            .where(AuthorizationCode.code == code)
            .returning(AuthorizationCode.guid),
        )

    async def delete_token_by_refresh(self, refresh_token: Optional[str]) -> bool:
        # A NULL comparison would match every access-only row.
        if not refresh_token:
            return False
        return await self._delete(
            "delete_token_by_refresh",
            delete(OAuth2Token)
            .where(OAuth2Token.refresh_token == refresh_token)
            .returning(OAuth2Token.guid),
        )
