"""Session token data models.

Session tokens are opaque bearer credentials handed to clients after a
successful login. They carry a fixed scope and expire a fixed time after
issue; there is no refresh or revocation.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from social.parley.ident.model.base import Base

FULL_CONTROL_SCOPE = 0x7FFF_FFFF_FFFF_FFFF
"""Every capability bit that fits a signed 64-bit column."""


class SessionToken(Base):
    """Bearer token granting API access on behalf of a user."""

    __tablename__ = "session_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    app_id: Mapped[str] = mapped_column(String(32), nullable=False)
    scope: Mapped[int] = mapped_column(BigInteger, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


Index("idx_session_tokens_user_id", SessionToken.user_id)
Index("idx_session_tokens_expires", SessionToken.expires_at)
