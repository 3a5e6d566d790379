import logging
from time import time
from typing import (
    Optional,
)
from aio_statsd import TelegrafStatsdClient
from aiohttp import web
import aiohttp
import redis.asyncio as redis
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from social.parley.ident.app.config import (
    DatabaseAppKey,
    DatabaseSessionMakerAppKey,
    EmailSenderAppKey,
    RedisClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from social.parley.ident.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_me,
    handle_internal_ready,
)
from social.parley.ident.app.handlers.users import (
    handle_password_complexity,
    handle_register,
    handle_token,
)
from social.parley.ident.identity.email import (
    EmailSender,
    HttpEmailSender,
    LoggingEmailSender,
)

logger = logging.getLogger(__name__)


def create_email_sender(
    settings: Settings, http_session: aiohttp.ClientSession
) -> EmailSender:
    if settings.email_api_url:
        return HttpEmailSender(
            http_session,
            settings.email_api_url,
            settings.email_api_key,
            settings.email_from,
        )
    logger.warning("EMAIL_API_URL is not set, outbound email will only be logged")
    return LoggingEmailSender()


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    engine = create_async_engine(str(settings.pg_dsn))
    app[DatabaseAppKey] = engine
    database_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    app[DatabaseSessionMakerAppKey] = database_session

    app[SessionAppKey] = aiohttp.ClientSession()

    app[EmailSenderAppKey] = create_email_sender(settings, app[SessionAppKey])

    app[RedisClientAppKey] = redis.Redis(
        connection_pool=redis.ConnectionPool.from_url(str(settings.redis_dsn))
    )

    statsd_client = TelegrafStatsdClient(
        host=settings.statsd_host, port=settings.statsd_port, debug=settings.debug
    )
    await statsd_client.connect()
    app[TelegrafStatsdClientAppKey] = statsd_client

    logger.info("Startup complete")

    yield

    logger.info("Shutting down")

    await app[DatabaseAppKey].dispose()
    await app[SessionAppKey].close()
    await app[RedisClientAppKey].aclose()
    await app[TelegrafStatsdClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except web.HTTPException:
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except web.HTTPException as e:
        response_status_code = e.status
        raise e
    except Exception as e:
        statsd_client.increment(
            "ident.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        statsd_client.timer(
            "ident.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        statsd_client.increment(
            "ident.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=False,
            integrations=[AioHttpIntegration()],
        )
    app = web.Application(middlewares=[statsd_middleware, sentry_middleware])

    app[SettingsAppKey] = settings

    app.add_routes(
        [
            web.post("/api/user/register", handle_register),
            web.post("/api/user/password-complexity", handle_password_complexity),
            web.post("/api/user/token", handle_token),
        ]
    )

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
            web.get("/internal/api/me", handle_internal_me),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
