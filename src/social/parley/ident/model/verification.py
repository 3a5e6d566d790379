"""Email verification code data models.

A verification code is the one-time proof that a registrant controls the email
address they signed up with. The code is consumed by deleting the row in the
same transaction that marks the owner's email as verified.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from social.parley.ident.model.base import Base
from social.parley.ident.model.users import User


class VerificationCode(Base):
    """Outstanding email verification code for an unverified user."""

    __tablename__ = "verification_codes"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


Index("idx_verification_codes_user_id", VerificationCode.user_id)


async def consume_verification_code(
    database_session: AsyncSession, code: str, user_id: int
) -> bool:
    """
    Delete the code owned by user_id and mark that user's email as verified.

    Must be called inside an open transaction. Returns False without touching
    the user when no matching code exists for that owner, which also covers a
    code that was consumed by a concurrent request.
    """
    delete_stmt = (
        delete(VerificationCode)
        .where(VerificationCode.code == code, VerificationCode.user_id == user_id)
        .returning(VerificationCode.code)
    )
    consumed = (await database_session.scalars(delete_stmt)).first()
    if consumed is None:
        return False

    verify_stmt = update(User).where(User.id == user_id).values(email_verified=True)
    await database_session.execute(verify_stmt)
    return True
