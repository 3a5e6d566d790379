"""Password strength rules applied at registration."""

import asyncio
import re

from social.parley.ident.identity.results import OperationResult

DEFAULT_MIN_LENGTH = 10

_HAS_UPPER = re.compile(r"[A-Z]")
_HAS_LOWER = re.compile(r"[a-z]")
_HAS_DIGIT = re.compile(r"\d")
_HAS_SYMBOL = re.compile(r"[\W_]")


def check_complexity(
    password: str, min_length: int = DEFAULT_MIN_LENGTH
) -> OperationResult:
    """
    Check a candidate password against the strength rules.

    Rules are checked in a fixed order and the first failing rule determines
    the message, so the same password always yields the same result.
    """
    if len(password) < min_length:
        return OperationResult.failed(
            f"Failed: Please use a password at least {min_length} characters in length."
        )

    if not _HAS_UPPER.search(password):
        return OperationResult.failed(
            "Failed: Please use a password that contains an uppercase character."
        )

    if not _HAS_LOWER.search(password):
        return OperationResult.failed(
            "Failed: Please use a password that contains a lowercase character."
        )

    if not _HAS_DIGIT.search(password):
        return OperationResult.failed(
            "Failed: Please use a password that contains a number."
        )

    if not _HAS_SYMBOL.search(password):
        return OperationResult.failed(
            "Failed: Please use a password that contains a symbol."
        )

    return OperationResult.succeeded("Success: The given password passed all tests.")


async def check_complexity_async(
    password: str, min_length: int = DEFAULT_MIN_LENGTH
) -> OperationResult:
    return await asyncio.to_thread(check_complexity, password, min_length)
