"""
Common testing utilities for identity service tests.

Provides stand-ins for the service collaborators (StatsD, email), record
factories and reusable CRUD assertions.
"""

from datetime import datetime, timezone, timedelta
from typing import Type, Dict, Any, List, Tuple
import uuid
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from social.parley.ident.identity.email import EmailSender
from social.parley.ident.model.base import Base
from social.parley.ident.model.users import User


class MockStatsdClient:
    """Mock StatsD client for testing metrics collection."""

    def __init__(self):
        self.increments = {}
        self.timers = {}

    def increment(self, metric_name, value=1, tag_dict=None):
        """Record increment metric."""
        key = (metric_name, tuple(sorted((tag_dict or {}).items())))
        self.increments[key] = self.increments.get(key, 0) + value

    def timer(self, metric_name, value, tag_dict=None):
        """Record timer metric."""
        self.timers[metric_name] = {"value": value, "tags": tag_dict or {}}

    def count(self, metric_name) -> int:
        """Total of a counter across all tag combinations."""
        return sum(v for (name, _), v in self.increments.items() if name == metric_name)


class RecordingEmailSender(EmailSender):
    """Email sender that keeps every message instead of delivering it."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str, str]] = []

    async def send_email(self, to, subject, plain_body, html_body):
        self.sent.append((to, subject, plain_body, html_body))


class FailingEmailSender(EmailSender):
    """Email sender whose delivery always fails."""

    def __init__(self):
        self.attempts = 0

    async def send_email(self, to, subject, plain_body, html_body):
        self.attempts += 1
        raise ConnectionError("mail relay unreachable")


def unique_name(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def generate_test_datetime(offset_minutes: int = 0) -> datetime:
    """Generate a timezone-aware datetime for testing."""
    return datetime.now(timezone.utc) + timedelta(minutes=offset_minutes)


async def create_test_user(
    session: AsyncSession,
    username: str = "",
    email: str = "",
    email_verified: bool = False,
) -> User:
    """Insert a user directly, bypassing the registration flow."""
    username = username or unique_name()
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        email_verified=email_verified,
        created_at=generate_test_datetime(),
    )
    session.add(user)
    await session.commit()
    return user


async def count_rows(session: AsyncSession, model_class: Type[Base]) -> int:
    result = await session.execute(select(func.count()).select_from(model_class))
    return result.scalar_one()


def assert_model_fields_match(
    model_instance: Base, expected_data: Dict[str, Any]
) -> None:
    """Assert that all fields in expected_data match the model instance."""
    for field_name, expected_value in expected_data.items():
        actual_value = getattr(model_instance, field_name)
        assert (
            actual_value == expected_value
        ), f"Field {field_name}: expected {expected_value}, got {actual_value}"


async def create_and_verify_record(
    session: AsyncSession,
    model_class: Type[Base],
    data: Dict[str, Any],
    primary_key_field: str,
) -> Base:
    """Create a record and verify it was created correctly."""
    record = model_class(**data)
    session.add(record)
    await session.commit()

    primary_key_value = getattr(record, primary_key_field)
    result = await session.execute(
        select(model_class).where(
            getattr(model_class, primary_key_field) == primary_key_value
        )
    )
    retrieved_record = result.scalar_one()

    assert_model_fields_match(retrieved_record, data)
    return retrieved_record


async def assert_read_nonexistent_record(
    session: AsyncSession,
    model_class: Type[Base],
    primary_key_field: str,
    nonexistent_key_value: Any = "nonexistent-key",
) -> None:
    """Test reading a nonexistent record returns None."""
    result = await session.execute(
        select(model_class).where(
            getattr(model_class, primary_key_field) == nonexistent_key_value
        )
    )
    record = result.scalar_one_or_none()
    assert record is None
