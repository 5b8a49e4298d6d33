"""OAuth2 client registrations.

Clients are created by administrative flows outside the credential model and
are only read by it.
"""
from typing import List, Optional
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from social.graze.credmodel.schema.base import Base, guidpk, str255


class OAuth2Client(Base):
    """Registered OAuth2 client.

    The client secret doubles as the HS256 signing key for every token issued
    to the client. `user_id` designates the owning user for client-credentials
    grants and is optional.
    """
    __tablename__ = "oauth2_clients"

    guid: Mapped[guidpk]
    client_id: Mapped[str255]
    client_secret: Mapped[str255]
    redirect_uris: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    grants: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    access_token_lifetime: Mapped[int] = mapped_column(Integer, nullable=False)
    refresh_token_lifetime: Mapped[int] = mapped_column(Integer, nullable=False)
    domain: Mapped[str255]
    user_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("idx_oauth2_clients_client_id", "client_id", unique=True),
    )
