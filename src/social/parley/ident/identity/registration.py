from datetime import datetime, timezone
import asyncio
import logging
from typing import Optional
import uuid
from aio_statsd import TelegrafStatsdClient
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    AsyncSession,
)
import sentry_sdk

from social.parley.ident.app.config import Settings
from social.parley.ident.identity.email import EmailSender, registration_email
from social.parley.ident.identity.errors import (
    IdentityException,
    OperationalFailure,
    ValidationFailure,
)
from social.parley.ident.identity.results import OperationResult
from social.parley.ident.model.credentials import PASSWORD_CREDENTIAL, Credential
from social.parley.ident.model.users import (
    EMAIL_INDEX,
    USERNAME_INDEX,
    User,
    email_taken,
    username_taken,
)
from social.parley.ident.model.verification import VerificationCode
from social.parley.ident.security.hashing import generate_salt, hash_password
from social.parley.ident.security.password_policy import (
    DEFAULT_MIN_LENGTH,
    check_complexity_async,
)

logger = logging.getLogger(__name__)

# PostgreSQL text columns cannot hold NUL.
NUL = "\x00"


def generate_verification_code() -> str:
    return str(uuid.uuid4())


def duplicate_from_integrity_error(
    e: IntegrityError, username: str, email: str
) -> IdentityException:
    """
    Translate a unique index violation on the users table into the same
    failure the pre-insert checks would have produced.
    """
    detail = str(e.orig)
    if USERNAME_INDEX in detail:
        return ValidationFailure.duplicate_username(username)
    if EMAIL_INDEX in detail:
        return ValidationFailure.duplicate_email(email)
    return OperationalFailure.user_write()


async def test_password_complexity(
    password: str, settings: Optional[Settings] = None
) -> OperationResult:
    min_length = settings.password_min_length if settings else DEFAULT_MIN_LENGTH
    return await check_complexity_async(password, min_length)


async def create_account(
    database_session: AsyncSession,
    username: str,
    email: str,
    password: str,
    min_length: int = DEFAULT_MIN_LENGTH,
) -> str:
    """
    Create the user, its password credential and its verification code.

    All three rows are written in one transaction, so either the account is
    fully usable or nothing was stored. Returns the verification code.

    Raises:
        ValidationFailure: Duplicate username/email, a weak password or a
            field containing NUL
        OperationalFailure: One of the writes failed for any other reason
    """
    fields = (("username", username), ("email", email), ("password", password))
    for field, value in fields:
        if NUL in value:
            raise ValidationFailure.invalid_characters(field)

    async with database_session.begin():
        # 1. Usernames and emails are unique without regard to case
        if await username_taken(database_session, username):
            raise ValidationFailure.duplicate_username(username)

        if await email_taken(database_session, email):
            raise ValidationFailure.duplicate_email(email)

        # 2. Enforce password rules
        password_result = await check_complexity_async(password, min_length)
        if not password_result.success:
            raise ValidationFailure.weak_password(password_result.message)

        now = datetime.now(timezone.utc)

        # 3. Create the user. The unique indexes are the final word when two
        # registrations race past the checks above.
        user = User(
            username=username,
            email=email,
            email_verified=False,
            created_at=now,
        )
        database_session.add(user)
        try:
            await database_session.flush()
        except IntegrityError as e:
            raise duplicate_from_integrity_error(e, username, email) from e
        except SQLAlchemyError as e:
            raise OperationalFailure.user_write() from e

        # 4. Create the password credential
        salt = generate_salt()
        secret = await asyncio.to_thread(hash_password, password, salt)
        database_session.add(
            Credential(
                credential_type=PASSWORD_CREDENTIAL,
                identifier=email,
                salt=salt,
                secret=secret,
                user_id=user.id,
            )
        )
        try:
            await database_session.flush()
        except SQLAlchemyError as e:
            raise OperationalFailure.credential_write() from e

        # 5. Create the email verification code
        code = generate_verification_code()
        database_session.add(
            VerificationCode(code=code, user_id=user.id, created_at=now)
        )
        try:
            await database_session.flush()
        except SQLAlchemyError as e:
            raise OperationalFailure.verification_write() from e

    return code


async def send_verification_email(
    email_sender: EmailSender, service_name: str, email: str, code: str
) -> None:
    subject, plain_body, html_body = registration_email(service_name, code)
    try:
        await email_sender.send_email(email, subject, plain_body, html_body)
    except Exception as e:
        # Delivery is best effort; the account already exists.
        sentry_sdk.capture_exception(e)
        logger.exception("send_verification_email: Exception")


async def register_user(
    database_session_maker: async_sessionmaker[AsyncSession],
    email_sender: EmailSender,
    statsd_client: TelegrafStatsdClient,
    username: str,
    email: str,
    password: str,
    settings: Optional[Settings] = None,
) -> OperationResult:
    """
    Register a new account and email its verification code.

    Validation failures are returned with their specific message. Storage
    failures are logged and reported with their internal error code, and the
    caller receives a generic message.
    """
    min_length = settings.password_min_length if settings else DEFAULT_MIN_LENGTH
    service_name = settings.service_name if settings else "Parley"

    try:
        async with database_session_maker() as database_session:
            code = await create_account(
                database_session, username, email, password, min_length
            )
    except ValidationFailure as e:
        statsd_client.increment(
            "ident.register.failure", 1, tag_dict={"code": e.code}
        )
        return OperationResult.from_exception(e)
    except OperationalFailure as e:
        sentry_sdk.capture_exception(e)
        logger.exception("register_user: %s", e.code)
        statsd_client.increment(
            "ident.register.failure", 1, tag_dict={"code": e.code}
        )
        return OperationResult.from_exception(e)
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("register_user: Exception")
        failure = OperationalFailure.unexpected(type(e).__name__)
        statsd_client.increment(
            "ident.register.failure", 1, tag_dict={"code": failure.code}
        )
        return OperationResult.from_exception(failure)

    statsd_client.increment("ident.register.success", 1)

    await send_verification_email(email_sender, service_name, email, code)

    return OperationResult.succeeded(f"Successfully created user {username}")
