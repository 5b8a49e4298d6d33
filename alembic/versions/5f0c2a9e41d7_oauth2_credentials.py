"""oauth2 credentials

Revision ID: 5f0c2a9e41d7
Revises:
Create Date: 2026-10-19 10:02:11.418302

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5f0c2a9e41d7"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("guid", sa.String(32), primary_key=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
    )
    op.create_index("idx_users_email", "users", ["email"], unique=True)
    op.create_index("idx_users_username", "users", ["username"], unique=True)

    op.create_table(
        "oauth2_clients",
        sa.Column("guid", sa.String(32), primary_key=True),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("client_secret", sa.String(255), nullable=False),
        sa.Column("redirect_uris", sa.JSON, nullable=False),
        sa.Column("grants", sa.JSON, nullable=False),
        sa.Column("access_token_lifetime", sa.Integer, nullable=False),
        sa.Column("refresh_token_lifetime", sa.Integer, nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_oauth2_clients_client_id", "oauth2_clients", ["client_id"], unique=True
    )

    op.create_table(
        "oauth2_codes",
        sa.Column("guid", sa.String(32), primary_key=True),
        sa.Column("code", sa.String(255), nullable=False),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("redirect_uri", sa.String(1024), nullable=False),
        sa.Column("scope", sa.String(1024), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_oauth2_codes_code", "oauth2_codes", ["code"], unique=True)
    op.create_index("idx_oauth2_codes_expires", "oauth2_codes", ["expires_at"])

    # One row per access/refresh pair; revoking by refresh token removes both.
    op.create_table(
        "oauth2_tokens",
        sa.Column("guid", sa.String(32), primary_key=True),
        sa.Column("access_token", sa.String(1024), nullable=False),
        sa.Column(
            "access_token_expires_at", sa.DateTime(timezone=True), nullable=False
        ),
        sa.Column("refresh_token", sa.String(1024), nullable=True),
        sa.Column(
            "refresh_token_expires_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("scope", sa.String(1024), nullable=False),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_oauth2_tokens_access_token", "oauth2_tokens", ["access_token"], unique=True
    )
    op.create_index(
        "idx_oauth2_tokens_refresh_token",
        "oauth2_tokens",
        ["refresh_token"],
        unique=True,
    )
    op.create_index("idx_oauth2_tokens_user_id", "oauth2_tokens", ["user_id"])


def downgrade() -> None:
    op.drop_table("oauth2_tokens")
    op.drop_table("oauth2_codes")
    op.drop_table("oauth2_clients")
    op.drop_table("users")
