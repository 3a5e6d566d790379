"""
Configuration Module for the Parley Identity Service

This module defines the configuration system for the identity service, using Pydantic for
settings validation and dependency injection through AppKeys.

The Settings class serves as the central configuration point, loaded from environment variables
with defaults suitable for development environments. All application components access settings
and shared resources through typed AppKeys to maintain clean dependency injection.

Key configuration areas include:
- Service identification and networking
- Database and cache connections
- Password and session token policy
- Outbound email
- Monitoring and observability
"""

from datetime import timedelta
from typing import Final, Optional
import logging
from aio_statsd import TelegrafStatsdClient
from pydantic import (
    AliasChoices,
    Field,
    PostgresDsn,
    RedisDsn,
)
from pydantic_settings import BaseSettings
from aiohttp import web
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
)
from aiohttp import ClientSession
from redis import asyncio as redis

from social.parley.ident.identity.email import EmailSender
from social.parley.ident.security.password_policy import DEFAULT_MIN_LENGTH


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the identity service.

    This class uses Pydantic's BaseSettings to automatically load values from environment
    variables, with sensible defaults for development environments.

    Environment variables are automatically mapped to settings fields, with aliases
    provided where more than one name is in common use. For example, the database
    connection string can be set with either PG_DSN or DATABASE_URL.
    """

    # Environment and debugging settings
    debug: bool = False
    """
    Enable debug mode for verbose logging and development features.
    Set with DEBUG=true environment variable.
    """

    # Network and service identification settings
    http_port: int = Field(alias="port", default=5200)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    service_name: str = "Parley"
    """
    Human readable service name used in outbound email.
    Set with SERVICE_NAME environment variable.
    """

    # Monitoring and error reporting
    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    # Database and cache connections
    redis_dsn: RedisDsn = Field(
        "redis://valkey:6379/2?decode_responses=True",
        validation_alias=AliasChoices("redis_dsn", "redis_url"),
    )  # type: ignore
    """
    Redis connection string for the session token cache.
    Set with REDIS_DSN or REDIS_URL environment variables.
    """

    pg_dsn: PostgresDsn = Field(
        "postgresql+asyncpg://postgres:password@db/parley",
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )  # type: ignore
    """
    PostgreSQL connection string for database access.
    Set with PG_DSN or DATABASE_URL environment variables.
    """

    # Credential policy
    password_min_length: int = DEFAULT_MIN_LENGTH
    """
    Minimum number of characters accepted for a new password.
    Set with PASSWORD_MIN_LENGTH environment variable.
    """

    session_token_app_id: str = "PARLEY"
    """
    Application tag stamped on every session token issued by this service.
    Set with SESSION_TOKEN_APP_ID environment variable.
    """

    session_token_cache_ttl: int = 300  # 5 minutes
    """
    Upper bound in seconds for caching a validated session token in Redis.
    Entries never outlive the token itself.
    Set with SESSION_TOKEN_CACHE_TTL environment variable.
    """

    # Outbound email
    email_api_url: Optional[str] = None
    """
    HTTP endpoint of the mail delivery API (SendGrid v3 compatible).
    When unset, outbound email is written to the log instead.
    Set with EMAIL_API_URL environment variable.
    """

    email_api_key: str = ""
    """
    Bearer key for the mail delivery API.
    Set with EMAIL_API_KEY environment variable.
    """

    email_from: str = "noreply@parley.chat"
    """
    Sender address for outbound email.
    Set with EMAIL_FROM environment variable.
    """

    # Monitoring and observability settings
    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    statsd_prefix: str = "ident"
    """
    Prefix for all StatsD metrics from this service.
    Set with STATSD_PREFIX environment variable.
    """


SESSION_TOKEN_LIFETIME: Final = timedelta(days=7)
"""Every session token expires exactly this long after it is issued."""

SESSION_TOKEN_CACHE_KEY = "session_token:{token_id}"
"""
Redis key template for cached session token lookups.
Values are "<user_id>:<expires_at unix timestamp>".
"""

# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

DatabaseAppKey: Final = web.AppKey("database", AsyncEngine)
"""AppKey for accessing the SQLAlchemy async database engine"""

DatabaseSessionMakerAppKey: Final = web.AppKey(
    "database_session_maker", async_sessionmaker[AsyncSession]
)
"""AppKey for accessing the SQLAlchemy async session factory"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

RedisClientAppKey: Final = web.AppKey("redis_client", redis.Redis)
"""AppKey for accessing the Redis client"""

EmailSenderAppKey: Final = web.AppKey("email_sender", EmailSender)
"""AppKey for accessing the outbound email sender"""

TelegrafStatsdClientAppKey: Final = web.AppKey(
    "telegraf_statsd_client", TelegrafStatsdClient
)
"""AppKey for the Telegraf/StatsD metrics client"""
