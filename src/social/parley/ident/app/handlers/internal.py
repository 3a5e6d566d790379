import json
import logging
import traceback
from aiohttp import web
import sentry_sdk
from sqlalchemy import text
from social.parley.ident.app.config import (
    DatabaseSessionMakerAppKey,
    RedisClientAppKey,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from social.parley.ident.app.handlers.helpers import (
    AuthenticationException,
    session_token_helper,
)

logger = logging.getLogger(__name__)


async def handle_internal_me(request: web.Request):
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    redis_client = request.app[RedisClientAppKey]
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    settings = request.app[SettingsAppKey]
    try:
        async with (database_session_maker() as database_session,):
            try:
                auth_token = await session_token_helper(
                    database_session, redis_client, statsd_client, settings, request
                )
            except AuthenticationException:
                auth_token = None
            if auth_token is None:
                raise web.HTTPUnauthorized(
                    body=json.dumps({"error": "Not Authorized"}),
                    content_type="application/json",
                )
            return web.json_response(
                {
                    "id": auth_token.user.id,
                    "username": auth_token.user.username,
                    "email": auth_token.user.email,
                    "email_verified": auth_token.user.email_verified,
                    "token_expires_at": auth_token.expires_at.isoformat(),
                }
            )
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error in handle_internal_me: {type(e).__name__}: {str(e)}\n"
            f"Traceback:\n{traceback.format_exc()}"
        )

        sentry_sdk.capture_exception(e)

        if settings.debug:
            response_body = json.dumps(
                {
                    "error": "Internal Server Error",
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                    "traceback": traceback.format_exc(),
                }
            )
        else:
            response_body = json.dumps(
                {"error": "Internal Server Error", "error_type": type(e).__name__}
            )

        raise web.HTTPInternalServerError(
            body=response_body,
            content_type="application/json",
        )


async def handle_internal_ready(request: web.Request):
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    try:
        async with database_session_maker() as database_session:
            await database_session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("handle_internal_ready: database unavailable")
        return web.Response(status=503)
    return web.Response(status=200)


async def handle_internal_alive(request: web.Request):
    return web.Response(status=200)
