"""
Tests for session token issuance in social.parley.ident.identity.tokens

Covers the credential state machine (verification code first, password after),
the uniform failure message and token expiry, against PostgreSQL.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from social.parley.ident.identity import registration, tokens
from social.parley.ident.identity.errors import OperationalFailure, ValidationFailure
from social.parley.ident.model.tokens import FULL_CONTROL_SCOPE, SessionToken
from social.parley.ident.model.users import User
from social.parley.ident.model.verification import VerificationCode
from tests.test_helpers import count_rows, create_test_user

INVALID_CREDENTIAL = ValidationFailure.invalid_credential().caller_message


class TestCredentialState:
    def test_state_follows_verified_flag(self):
        assert tokens.CredentialState.of(User(email_verified=False)) is (
            tokens.CredentialState.UNVERIFIED
        )
        assert tokens.CredentialState.of(User(email_verified=True)) is (
            tokens.CredentialState.VERIFIED
        )


@pytest_asyncio.fixture
async def registered(session_maker, email_sender, mock_statsd):
    """Register alice and return the emailed verification code."""
    result = await registration.register_user(
        session_maker, email_sender, mock_statsd, "alice", "alice@x.com", "Str0ngP@ss1"
    )
    assert result.success
    async with session_maker() as session:
        code = (await session.scalars(select(VerificationCode))).one()
    assert code.code in email_sender.sent[0][2]
    return code.code


async def request(session_maker, mock_statsd, email, password):
    return await tokens.request_token(session_maker, mock_statsd, email, password)


async def get_alice(session_maker) -> User:
    async with session_maker() as session:
        return (
            await session.scalars(select(User).where(User.username == "alice"))
        ).one()


class TestUnverifiedLogin:
    async def test_emailed_code_verifies_and_issues_token(
        self, session_maker, mock_statsd, registered
    ):
        response = await request(session_maker, mock_statsd, "alice@x.com", registered)

        assert response.result.success is True
        assert response.result.message == "Successfully verified and retrieved token!"
        assert response.token_id is not None

        alice = await get_alice(session_maker)
        assert alice.email_verified is True

        async with session_maker() as session:
            assert await count_rows(session, VerificationCode) == 0
            token = await session.get(SessionToken, response.token_id)

        assert token is not None
        assert token.user_id == alice.id
        assert token.app_id == "PARLEY"
        assert token.scope == FULL_CONTROL_SCOPE
        assert token.expires_at - token.issued_at == timedelta(days=7)
        assert mock_statsd.count("ident.token.success") == 1

    async def test_email_lookup_ignores_case(
        self, session_maker, mock_statsd, registered
    ):
        response = await request(session_maker, mock_statsd, "ALICE@X.COM", registered)
        assert response.result.success is True

    async def test_wrong_code_is_rejected(self, session_maker, mock_statsd, registered):
        response = await request(session_maker, mock_statsd, "alice@x.com", "wrong-code")

        assert response.token_id is None
        assert response.result.success is False
        assert response.result.message == INVALID_CREDENTIAL

        alice = await get_alice(session_maker)
        assert alice.email_verified is False
        async with session_maker() as session:
            assert await count_rows(session, SessionToken) == 0
            assert await count_rows(session, VerificationCode) == 1

    async def test_password_does_not_work_before_verification(
        self, session_maker, mock_statsd, registered
    ):
        response = await request(session_maker, mock_statsd, "alice@x.com", "Str0ngP@ss1")

        assert response.token_id is None
        assert response.result.message == INVALID_CREDENTIAL
        assert (await get_alice(session_maker)).email_verified is False

    async def test_code_cannot_be_used_twice(
        self, session_maker, mock_statsd, registered
    ):
        first = await request(session_maker, mock_statsd, "alice@x.com", registered)
        second = await request(session_maker, mock_statsd, "alice@x.com", registered)

        assert first.result.success is True
        assert second.result.success is False
        assert second.token_id is None
        assert second.result.message == INVALID_CREDENTIAL

    async def test_someone_elses_code_is_rejected(
        self, session_maker, email_sender, mock_statsd, registered
    ):
        await registration.register_user(
            session_maker, email_sender, mock_statsd, "bob", "bob@x.com", "Str0ngP@ss1"
        )

        response = await request(session_maker, mock_statsd, "bob@x.com", registered)

        assert response.result.success is False
        assert response.result.message == INVALID_CREDENTIAL
        async with session_maker() as session:
            assert await session.get(VerificationCode, registered) is not None


class TestVerifiedLogin:
    @pytest_asyncio.fixture
    async def verified(self, session_maker, mock_statsd, registered):
        response = await request(session_maker, mock_statsd, "alice@x.com", registered)
        assert response.result.success
        return response

    async def test_password_issues_new_token(self, session_maker, mock_statsd, verified):
        response = await request(session_maker, mock_statsd, "alice@x.com", "Str0ngP@ss1")

        assert response.result.success is True
        assert response.token_id is not None
        assert response.token_id != verified.token_id
        async with session_maker() as session:
            assert await count_rows(session, SessionToken) == 2

    async def test_wrong_password_is_rejected(self, session_maker, mock_statsd, verified):
        response = await request(session_maker, mock_statsd, "alice@x.com", "Str0ngP@ss2")
        assert response.token_id is None
        assert response.result.message == INVALID_CREDENTIAL


class TestUnknownAccount:
    async def test_unknown_email_gets_same_message(
        self, session_maker, mock_statsd, registered
    ):
        unknown = await request(session_maker, mock_statsd, "nobody@x.com", "Str0ngP@ss1")
        wrong = await request(session_maker, mock_statsd, "alice@x.com", "wrong-code")

        assert unknown.token_id is None
        assert unknown.result.model_dump() == wrong.result.model_dump()
        assert mock_statsd.count("ident.token.failure") == 2

    async def test_nul_secret_gets_same_answer_for_pending_and_unknown(
        self, session_maker, mock_statsd, registered
    ):
        pending = await request(session_maker, mock_statsd, "alice@x.com", "bad\x00code")
        unknown = await request(session_maker, mock_statsd, "nobody@x.com", "bad\x00code")

        assert pending.token_id is None
        assert pending.result.operational is False
        assert pending.result.error_code == unknown.result.error_code
        assert pending.result.model_dump() == unknown.result.model_dump()
        assert pending.result.message == INVALID_CREDENTIAL
        assert (await get_alice(session_maker)).email_verified is False

    async def test_nul_email_is_rejected(self, session_maker, mock_statsd, registered):
        response = await request(session_maker, mock_statsd, "alice\x00@x.com", registered)

        assert response.result.operational is False
        assert response.result.message == INVALID_CREDENTIAL


class TestOperationalFailures:
    async def test_store_failure_is_masked(self, mock_statsd):
        broken_session_maker = MagicMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("connection refused"))
        )

        response = await request(broken_session_maker, mock_statsd, "alice@x.com", "x")

        assert response.token_id is None
        assert response.result.success is False
        assert response.result.operational is True
        assert "connection refused" not in response.result.message
        assert response.result.message == OperationalFailure.public_message

    async def test_token_write_failure(
        self, session_maker, mock_statsd, registered, monkeypatch
    ):
        async def broken_issue(*args, **kwargs):
            raise OperationalFailure.token_write()

        monkeypatch.setattr(tokens, "issue_session_token", broken_issue)

        response = await request(session_maker, mock_statsd, "alice@x.com", registered)

        assert response.token_id is None
        assert response.result.error_code == OperationalFailure.token_write().code
        assert response.result.message == OperationalFailure.public_message


async def test_token_lifetime_is_seven_days(session_maker, session):
    alice = await create_test_user(session, email_verified=True)

    token = await tokens.issue_session_token(session_maker, alice.id)

    assert token.expires_at - token.issued_at == timedelta(days=7)
    assert token.scope == FULL_CONTROL_SCOPE
    assert len(token.id) >= 43
