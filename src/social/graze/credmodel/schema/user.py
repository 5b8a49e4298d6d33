from typing import Optional
from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column

from social.graze.credmodel.schema.base import Base, guidpk, str255


class User(Base):
    """Account record owned by the user-management service.

    The credential model never writes to this table.
    """
    __tablename__ = "users"

    guid: Mapped[guidpk]
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[str255]
    password_hash: Mapped[str255]

    __table_args__ = (
        Index("idx_users_email", "email", unique=True),
        Index("idx_users_username", "username", unique=True),
    )
