"""User repository capability.

Users are owned by an external user-management service. The credential model
only needs to read them, by id or by login name, through UserRepository.
SQLAlchemyUserRepository reads the reference `users` table.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social.graze.credmodel.records import UserProjection
from social.graze.credmodel.schema.user import User
from social.graze.credmodel.store import translate_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    password_hash: str = field(repr=False)
    username: Optional[str] = None

    def project(self) -> UserProjection:
        return UserProjection(id=self.id, username=self.username or self.email)


class UserRepository(ABC):
    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def find_by_login(self, login: str) -> Optional[UserRecord]:
        """Find a user whose username or email equals `login`."""
        pass


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @staticmethod
    def _record(user: Optional[User]) -> Optional[UserRecord]:
        if user is None:
            return None
        return UserRecord(
            id=user.guid,
            email=user.email,
            password_hash=user.password_hash,
            username=user.username,
        )

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        async with translate_errors("find_user_by_id"):
            async with self._session_maker() as session:
                stmt = select(User).where(User.guid == user_id)
                return self._record((await session.scalars(stmt)).first())

    async def find_by_login(self, login: str) -> Optional[UserRecord]:
        async with translate_errors("find_user_by_login"):
            async with self._session_maker() as session:
                stmt = select(User).where(or_(User.email == login, User.username == login))
                return self._record((await session.scalars(stmt)).first())
