"""init

Revision ID: 5c1e2a7d9b30
Revises:
Create Date: 2026-10-19 12:10:41.118204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e2a7d9b30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(256), nullable=False),
        sa.Column("email", sa.String(512), nullable=False),
        sa.Column("email_verified", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    # Uniqueness ignores case; these indexes are what settles registration races.
    op.create_index(
        "idx_users_username_lower", "users", [sa.text("lower(username)")], unique=True
    )
    op.create_index(
        "idx_users_email_lower", "users", [sa.text("lower(email)")], unique=True
    )

    op.create_table(
        "credentials",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("credential_type", sa.String(32), nullable=False),
        sa.Column("identifier", sa.String(512), nullable=False),
        sa.Column("salt", sa.LargeBinary(64), nullable=False),
        sa.Column("secret", sa.LargeBinary(64), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_credentials_identifier", "credentials", [sa.text("lower(identifier)")]
    )
    op.create_index("idx_credentials_user_id", "credentials", ["user_id"])

    op.create_table(
        "verification_codes",
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_verification_codes_user_id", "verification_codes", ["user_id"]
    )

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("app_id", sa.String(32), nullable=False),
        sa.Column("scope", sa.BigInteger, nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_session_tokens_user_id", "session_tokens", ["user_id"])
    op.create_index("idx_session_tokens_expires", "session_tokens", ["expires_at"])


def downgrade() -> None:
    op.drop_table("session_tokens")
    op.drop_table("verification_codes")
    op.drop_table("credentials")
    op.drop_table("users")
