"""Registered identity data models.

Provides the SQLAlchemy model for user accounts. Usernames and email addresses
are unique without regard to letter case, enforced by functional indexes so
that concurrent registrations cannot both succeed.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from social.parley.ident.model.base import Base, str256, str512

USERNAME_INDEX = "idx_users_username_lower"
EMAIL_INDEX = "idx_users_email_lower"


class User(Base):
    """A registered account.

    The id is assigned by the database on insert. The email_verified flag
    starts out false and is flipped once, the first time the owner logs in
    with the verification code that was emailed to them.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str256]
    email: Mapped[str512]
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


Index(USERNAME_INDEX, func.lower(User.username), unique=True)
Index(EMAIL_INDEX, func.lower(User.email), unique=True)


async def username_taken(database_session: AsyncSession, username: str) -> bool:
    stmt = select(User.id).where(func.lower(User.username) == username.lower())
    return (await database_session.scalars(stmt)).first() is not None


async def email_taken(database_session: AsyncSession, email: str) -> bool:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    return (await database_session.scalars(stmt)).first() is not None


async def get_user(database_session: AsyncSession, user_id: int) -> Optional[User]:
    return await database_session.get(User, user_id)
