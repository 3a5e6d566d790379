from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Optional
from aio_statsd import TelegrafStatsdClient
from aiohttp import web
import redis.asyncio as redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
)
import sentry_sdk

from social.parley.ident.app.config import SESSION_TOKEN_CACHE_KEY, Settings
from social.parley.ident.model.tokens import SessionToken
from social.parley.ident.model.users import User, get_user

logger = logging.getLogger(__name__)


@dataclass(repr=False, eq=False)
class AuthToken:
    """
    Represents an authenticated request.

    Attributes:
        token_id: The session token presented by the caller
        expires_at: When the session token stops being valid
        user: The account the session token belongs to
    """

    token_id: str
    expires_at: datetime
    user: User


class AuthenticationException(Exception):
    """
    Exception raised for authentication failures.

    This exception class provides static methods for creating specific
    authentication failure instances with appropriate error messages.
    """

    @staticmethod
    def session_not_found() -> "AuthenticationException":
        """No unexpired session token matches the bearer token."""
        return AuthenticationException(
            "error-auth-helper-1000 No valid session found"
        )

    @staticmethod
    def user_not_found() -> "AuthenticationException":
        """The session token points at an account that no longer exists."""
        return AuthenticationException(
            "error-auth-helper-1001 User record not found"
        )


def parse_cached_session(value) -> Optional[tuple[int, datetime]]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode()
    user_id, expires_at = str(value).split(":", 1)
    return int(user_id), datetime.fromtimestamp(int(expires_at), timezone.utc)


async def cache_session(
    redis_client: redis.Redis,
    settings: Settings,
    token_id: str,
    user_id: int,
    expires_at: datetime,
) -> None:
    now = datetime.now(timezone.utc)
    remaining = int((expires_at - now).total_seconds())
    ttl = min(remaining, settings.session_token_cache_ttl)
    if ttl <= 0:
        return
    await redis_client.set(
        SESSION_TOKEN_CACHE_KEY.format(token_id=token_id),
        f"{user_id}:{int(expires_at.timestamp())}",
        ex=ttl,
    )


async def session_token_helper(
    database_session: AsyncSession,
    redis_client: redis.Redis,
    statsd_client: TelegrafStatsdClient,
    settings: Settings,
    request: web.Request,
) -> Optional[AuthToken]:
    """
    Authenticate a request by its bearer session token.

    The token must be presented as `Authorization: Bearer <token>`. Lookups are
    cached in Redis for at most `session_token_cache_ttl` seconds and never past
    the token's expiry.

    Returns:
        An AuthToken if authentication succeeds, None if no bearer token was sent

    Raises:
        AuthenticationException: If the token is unknown, expired, or orphaned
    """

    authorizations: Optional[str] = request.headers.getone("Authorization", None)
    if (
        authorizations is None
        or not authorizations.startswith("Bearer ")
        or len(authorizations) < 8
    ):
        return None

    token_id = authorizations[7:]
    now = datetime.now(timezone.utc)

    try:
        cached = parse_cached_session(
            await redis_client.get(SESSION_TOKEN_CACHE_KEY.format(token_id=token_id))
        )

        if cached is not None and cached[1] > now:
            user_id, expires_at = cached
        else:
            session_token_stmt = select(SessionToken).where(
                SessionToken.id == token_id,
                SessionToken.expires_at > now,
            )
            session_token: Optional[SessionToken] = (
                await database_session.scalars(session_token_stmt)
            ).first()

            if session_token is None:
                raise AuthenticationException.session_not_found()

            user_id = session_token.user_id
            expires_at = session_token.expires_at
            await cache_session(redis_client, settings, token_id, user_id, expires_at)

        user = await get_user(database_session, user_id)
        if user is None:
            raise AuthenticationException.user_not_found()

        return AuthToken(token_id=token_id, expires_at=expires_at, user=user)
    except AuthenticationException:
        statsd_client.increment("ident.auth.rejected", 1)
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        statsd_client.increment(
            "ident.auth.exception",
            1,
            tag_dict={"exception": type(e).__name__},
        )
        logger.exception("session_token_helper: Exception")
        return None
