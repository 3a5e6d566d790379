"""Credential data models.

Holds the salted password digests that prove control of an account. Secrets
are never stored in plaintext; only the salt and the derived digest are kept.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from social.parley.ident.model.base import Base, bytes64, str512

PASSWORD_CREDENTIAL = "password"


class Credential(Base):
    """Secret material bound to exactly one user.

    The identifier is the email address given at registration time. Only the
    "password" credential type exists today.
    """

    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    credential_type: Mapped[str] = mapped_column(String(32), nullable=False)
    identifier: Mapped[str512]
    salt: Mapped[bytes64]
    secret: Mapped[bytes64]
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


Index("idx_credentials_identifier", func.lower(Credential.identifier))
Index("idx_credentials_user_id", Credential.user_id)


async def find_credential(
    database_session: AsyncSession,
    identifier: str,
    credential_type: str = PASSWORD_CREDENTIAL,
) -> Optional[Credential]:
    """Find the credential of the given type for an identifier, ignoring case."""
    stmt = select(Credential).where(
        Credential.credential_type == credential_type,
        func.lower(Credential.identifier) == identifier.lower(),
    )
    return (await database_session.scalars(stmt)).first()
