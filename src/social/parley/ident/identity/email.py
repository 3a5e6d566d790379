"""Outbound email delivery.

The identity flows only need to hand a message to something that will try to
deliver it. Delivery itself is best effort: callers log failures and move on.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, Tuple

from aiohttp import ClientSession

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    @abstractmethod
    async def send_email(
        self, to: str, subject: str, plain_body: str, html_body: str
    ) -> None:
        """
        Hand a message to the delivery backend.

        Raises on any delivery failure; it is up to the caller whether that
        matters.
        """


class HttpEmailSender(EmailSender):
    """
    Sends mail through an HTTP API that accepts SendGrid v3 mail/send payloads.
    """

    def __init__(
        self,
        http_session: ClientSession,
        api_url: str,
        api_key: str,
        from_address: str,
    ) -> None:
        self.http_session = http_session
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address

    def build_payload(
        self, to: str, subject: str, plain_body: str, html_body: str
    ) -> Dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_address},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": plain_body},
                {"type": "text/html", "value": html_body},
            ],
        }

    async def send_email(
        self, to: str, subject: str, plain_body: str, html_body: str
    ) -> None:
        payload = self.build_payload(to, subject, plain_body, html_body)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with self.http_session.post(
            self.api_url, headers=headers, json=payload
        ) as response:
            if response.status >= 300:
                raise Exception(f"Failed to send email: {response.status}")


class LoggingEmailSender(EmailSender):
    """Writes outbound mail to the log. Used when no mail API is configured."""

    async def send_email(
        self, to: str, subject: str, plain_body: str, html_body: str
    ) -> None:
        logger.info("Email to %s: %s\n%s", to, subject, plain_body)


def registration_email(service_name: str, code: str) -> Tuple[str, str, str]:
    """Return (subject, plain_body, html_body) for a new account's verification code."""
    subject = f"{service_name} Registration"

    plain_body = (
        f"Welcome to {service_name}!\n"
        "To verify your new account, please use this code as your password "
        f"the first time you log in:\n{code}"
    )

    html_body = (
        "<body style='background-color:#040D14'>"
        f"<h2 style='font-family:Helvetica; color:white'>Welcome to {service_name}!</h2>"
        "<p style='font-family:Helvetica; color:white'>"
        "To verify your new account, please use this code as your password "
        "the first time you log in:</p>"
        f"<p style='font-family:Helvetica; color:#88ffff'>{code}</p>"
        "</body>"
    )

    return subject, plain_body, html_body
