"""Access and refresh token storage.

Both tokens of a pair live in one row, so deleting the pair by its refresh
token also stops the access token from resolving.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from social.graze.credmodel.schema.base import Base, guidpk, str255, str1024


class OAuth2Token(Base):
    """Access token with its optional refresh sibling."""
    __tablename__ = "oauth2_tokens"

    guid: Mapped[guidpk]
    access_token: Mapped[str1024]
    access_token_expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    refresh_token: Mapped[Optional[str]] = mapped_column(
        String(1024), nullable=True
    )
    refresh_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    scope: Mapped[str1024]
    client_id: Mapped[str255]
    user_id: Mapped[str255]
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("idx_oauth2_tokens_access_token", "access_token", unique=True),
        Index("idx_oauth2_tokens_refresh_token", "refresh_token", unique=True),
        Index("idx_oauth2_tokens_user_id", "user_id"),
    )
