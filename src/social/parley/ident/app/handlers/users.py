import logging
from aiohttp import web
from pydantic import BaseModel, Field, ValidationError, field_validator
import sentry_sdk

from social.parley.ident.app.config import (
    DatabaseSessionMakerAppKey,
    EmailSenderAppKey,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from social.parley.ident.identity import registration, tokens
from social.parley.ident.identity.registration import NUL
from social.parley.ident.identity.results import OperationResult


logger = logging.getLogger(__name__)


class RegisterOperation(BaseModel):
    username: str = Field(min_length=1, max_length=256)
    email: str = Field(min_length=3, max_length=512)
    password: str = Field(max_length=1024)

    @field_validator("username", "email")
    def strip_check(cls, v: str) -> str:
        if v != v.strip():
            raise ValueError("must not start or end with whitespace")
        return v

    @field_validator("email")
    def email_check(cls, v: str) -> str:
        if v.count("@") != 1:
            raise ValueError("invalid format")
        return v

    @field_validator("username", "email", "password")
    def nul_check(cls, v: str) -> str:
        if NUL in v:
            raise ValueError("must not contain NUL")
        return v


class PasswordOperation(BaseModel):
    password: str = Field(max_length=1024)


class TokenOperation(BaseModel):
    email: str = Field(max_length=512)
    password: str = Field(max_length=1024)


def result_status(result: OperationResult, rejected_status: int = 400) -> int:
    if result.success:
        return 200
    if result.operational:
        return 500
    return rejected_status


async def handle_register(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    email_sender = request.app[EmailSenderAppKey]
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    settings = request.app[SettingsAppKey]

    try:
        data = await request.read()
        register_operation = RegisterOperation.model_validate_json(data)
    except (OSError, ValidationError):
        return web.json_response(status=400, data={"error": "Invalid JSON"})

    try:
        result = await registration.register_user(
            database_session_maker,
            email_sender,
            statsd_client,
            register_operation.username,
            register_operation.email,
            register_operation.password,
            settings=settings,
        )
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("handle_register: Exception")
        return web.json_response(status=500, data={"error": "Internal Server Error"})

    return web.json_response(status=result_status(result), data=result.model_dump())


async def handle_password_complexity(request: web.Request) -> web.Response:
    settings = request.app[SettingsAppKey]

    try:
        data = await request.read()
        password_operation = PasswordOperation.model_validate_json(data)
    except (OSError, ValidationError):
        return web.json_response(status=400, data={"error": "Invalid JSON"})

    result = await registration.test_password_complexity(
        password_operation.password, settings=settings
    )

    # A weak password is a normal answer for this endpoint, not a bad request.
    return web.json_response(status=200, data=result.model_dump())


async def handle_token(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    settings = request.app[SettingsAppKey]

    try:
        data = await request.read()
        token_operation = TokenOperation.model_validate_json(data)
    except (OSError, ValidationError):
        return web.json_response(status=400, data={"error": "Invalid JSON"})

    try:
        token_response = await tokens.request_token(
            database_session_maker,
            statsd_client,
            token_operation.email,
            token_operation.password,
            settings=settings,
        )
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("handle_token: Exception")
        return web.json_response(status=500, data={"error": "Internal Server Error"})

    return web.json_response(
        status=result_status(token_response.result, rejected_status=401),
        data=token_response.model_dump(),
    )
