"""
Password hashing primitives.

Salts come from the operating system CSPRNG through the secrets module. Digests
are derived with PBKDF2-HMAC-SHA256 from the cryptography package, so the same
password and salt always produce the same digest and the digest cannot be
turned back into the password.
"""

import secrets

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 32
"""Length in bytes of every generated salt."""

DIGEST_SIZE = 32
"""Length in bytes of every derived digest."""

PBKDF2_ITERATIONS = 600_000


def generate_salt() -> bytes:
    return secrets.token_bytes(SALT_SIZE)


def _kdf(salt: bytes) -> PBKDF2HMAC:
    # PBKDF2HMAC instances are single use.
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=DIGEST_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )


def hash_password(password: str, salt: bytes) -> bytes:
    """
    Derive the digest for a password and salt.

    Args:
        password: The plaintext password
        salt: A salt from generate_salt()

    Returns:
        bytes: A DIGEST_SIZE byte digest
    """
    return _kdf(salt).derive(password.encode("utf-8"))


def verify_password(password: str, salt: bytes, expected: bytes) -> bool:
    """Recompute the digest and compare it to expected in constant time."""
    try:
        _kdf(salt).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True
