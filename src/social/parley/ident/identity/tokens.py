"""
Session token issuance.

An account's credential state decides which secret it accepts at login:

* UNVERIFIED accounts accept only the one-time verification code that was
  emailed at registration. Using it verifies the email and deletes the code.
* VERIFIED accounts accept only the password, checked against its digest.

Every rejection produces the same message so that a caller cannot tell an
unknown email from a wrong password or a pending verification.
"""

from datetime import datetime, timezone
from enum import Enum
import asyncio
import logging
import secrets
from typing import Optional
from aio_statsd import TelegrafStatsdClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    AsyncSession,
)
import sentry_sdk

from social.parley.ident.app.config import SESSION_TOKEN_LIFETIME, Settings
from social.parley.ident.identity.errors import (
    OperationalFailure,
    ValidationFailure,
)
from social.parley.ident.identity.registration import NUL
from social.parley.ident.identity.results import OperationResult, TokenResponse
from social.parley.ident.model.credentials import find_credential
from social.parley.ident.model.tokens import FULL_CONTROL_SCOPE, SessionToken
from social.parley.ident.model.users import User, get_user
from social.parley.ident.model.verification import consume_verification_code
from social.parley.ident.security.hashing import (
    DIGEST_SIZE,
    SALT_SIZE,
    verify_password,
)

logger = logging.getLogger(__name__)

DEFAULT_APP_ID = "PARLEY"

# Checked against when the email is unknown so that path costs one full hash.
_DUMMY_SALT = bytes(SALT_SIZE)
_DUMMY_SECRET = bytes(DIGEST_SIZE)


class CredentialState(Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"

    @staticmethod
    def of(user: User) -> "CredentialState":
        if user.email_verified:
            return CredentialState.VERIFIED
        return CredentialState.UNVERIFIED


async def authenticate(
    database_session: AsyncSession, email: str, password: str
) -> int:
    """
    Check a login attempt and return the authenticated user's id.

    For an unverified account the submitted secret is matched directly against
    the verification code store, and a match verifies the account in the same
    transaction.

    Raises:
        ValidationFailure: invalid_credential() for every kind of mismatch
        OperationalFailure: The verification could not be stored
    """
    async with database_session.begin():
        # 1. The password digest is always computed, whether or not the
        # account exists or still needs verification. No stored email, password
        # or code contains NUL, and PostgreSQL rejects it in a query.
        if NUL in email or NUL in password:
            await asyncio.to_thread(
                verify_password, password, _DUMMY_SALT, _DUMMY_SECRET
            )
            raise ValidationFailure.invalid_credential()

        credential = await find_credential(database_session, email)
        if credential is None:
            await asyncio.to_thread(
                verify_password, password, _DUMMY_SALT, _DUMMY_SECRET
            )
            raise ValidationFailure.invalid_credential()

        password_matches = await asyncio.to_thread(
            verify_password, password, credential.salt, credential.secret
        )

        user = await get_user(database_session, credential.user_id)
        if user is None:
            raise ValidationFailure.invalid_credential()

        # 2. The credential state decides which secret counts.
        state = CredentialState.of(user)

        if state is CredentialState.VERIFIED:
            if not password_matches:
                raise ValidationFailure.invalid_credential()
            return user.id

        try:
            consumed = await consume_verification_code(
                database_session, password, user.id
            )
        except SQLAlchemyError as e:
            raise OperationalFailure.verification_consume() from e

        # A code owned by someone else gets the same answer as a wrong one.
        if not consumed:
            raise ValidationFailure.invalid_credential()

        logger.info("Verified email for user %s", user.id)
        return user.id


async def issue_session_token(
    database_session_maker: async_sessionmaker[AsyncSession],
    user_id: int,
    app_id: str = DEFAULT_APP_ID,
) -> SessionToken:
    """Mint and store a full-control session token in its own transaction."""
    now = datetime.now(timezone.utc)
    session_token = SessionToken(
        id=secrets.token_urlsafe(32),
        user_id=user_id,
        app_id=app_id,
        scope=FULL_CONTROL_SCOPE,
        issued_at=now,
        expires_at=now + SESSION_TOKEN_LIFETIME,
    )

    try:
        async with database_session_maker() as database_session:
            async with database_session.begin():
                database_session.add(session_token)
    except SQLAlchemyError as e:
        raise OperationalFailure.token_write() from e

    return session_token


async def request_token(
    database_session_maker: async_sessionmaker[AsyncSession],
    statsd_client: TelegrafStatsdClient,
    email: str,
    password: str,
    settings: Optional[Settings] = None,
) -> TokenResponse:
    """
    Exchange an email and secret for a new session token.

    Returns a TokenResponse whose token_id is None on failure.
    """
    app_id = settings.session_token_app_id if settings else DEFAULT_APP_ID

    try:
        async with database_session_maker() as database_session:
            user_id = await authenticate(database_session, email, password)

        session_token = await issue_session_token(
            database_session_maker, user_id, app_id
        )
    except ValidationFailure as e:
        statsd_client.increment("ident.token.failure", 1, tag_dict={"code": e.code})
        return TokenResponse(result=OperationResult.from_exception(e))
    except OperationalFailure as e:
        sentry_sdk.capture_exception(e)
        logger.exception("request_token: %s", e.code)
        statsd_client.increment("ident.token.failure", 1, tag_dict={"code": e.code})
        return TokenResponse(result=OperationResult.from_exception(e))
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("request_token: Exception")
        failure = OperationalFailure.unexpected(type(e).__name__)
        statsd_client.increment(
            "ident.token.failure", 1, tag_dict={"code": failure.code}
        )
        return TokenResponse(result=OperationResult.from_exception(failure))

    statsd_client.increment("ident.token.success", 1)

    return TokenResponse(
        token_id=session_token.id,
        result=OperationResult.succeeded("Successfully verified and retrieved token!"),
    )
