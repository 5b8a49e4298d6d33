from datetime import datetime
from sqlalchemy import DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from social.graze.credmodel.schema.base import Base, guidpk, str255, str1024


class AuthorizationCode(Base):
    """Single-use authorization code.

    A row exists only while the code is redeemable. Consuming or revoking the
    code deletes the row.
    """
    __tablename__ = "oauth2_codes"

    guid: Mapped[guidpk]
    code: Mapped[str255]
    client_id: Mapped[str255]
    user_id: Mapped[str255]
    redirect_uri: Mapped[str1024]
    scope: Mapped[str1024]
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("idx_oauth2_codes_code", "code", unique=True),
        Index("idx_oauth2_codes_expires", "expires_at"),
    )
