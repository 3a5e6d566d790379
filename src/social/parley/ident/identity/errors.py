from typing import Optional


class IdentityException(Exception):
    """
    Base exception for failures in the registration and token flows.

    Every failure carries an internal error code used for logging and metrics
    and a message. Subclasses decide whether that message may be shown to the
    caller.

    Attributes:
        code: Internal error code, e.g. "error-register-1000"
        message: Human readable description
    """

    public_message: Optional[str] = None

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code} {message}")
        self.code = code
        self.message = message

    @property
    def caller_message(self) -> str:
        if self.public_message is not None:
            return self.public_message
        return self.message


class ValidationFailure(IdentityException):
    """
    An expected rejection of caller input.

    The message is returned to the caller unchanged, except for
    invalid_credential() which is deliberately identical for every cause.
    """

    @staticmethod
    def duplicate_username(username: str) -> "ValidationFailure":
        """Another account already uses this username, ignoring case."""
        return ValidationFailure(
            "error-register-1000",
            f"Failed: There was already a user named {username}",
        )

    @staticmethod
    def duplicate_email(email: str) -> "ValidationFailure":
        """Another account already uses this email address, ignoring case."""
        return ValidationFailure(
            "error-register-1001",
            f"Failed: There was already a user using the email {email}",
        )

    @staticmethod
    def weak_password(reason: str) -> "ValidationFailure":
        """The password did not pass the strength rules."""
        return ValidationFailure("error-register-1002", reason)

    @staticmethod
    def invalid_characters(field: str) -> "ValidationFailure":
        """A field holds a NUL character, which the store cannot keep."""
        return ValidationFailure(
            "error-register-1003",
            f"Failed: The {field} contains characters that are not allowed.",
        )

    @staticmethod
    def invalid_credential() -> "ValidationFailure":
        """Unknown email, wrong password, or wrong verification code."""
        return ValidationFailure(
            "error-token-2000", "The email or password is incorrect."
        )


class OperationalFailure(IdentityException):
    """
    The store could not complete a write.

    The caller only ever sees the generic public_message; the code and the
    original cause are kept for logs and error reporting.
    """

    public_message = "A critical error occurred. Please try again later."

    @staticmethod
    def user_write() -> "OperationalFailure":
        return OperationalFailure(
            "error-register-1100", "A critical error occurred adding the user."
        )

    @staticmethod
    def credential_write() -> "OperationalFailure":
        return OperationalFailure(
            "error-register-1101", "A critical error occurred adding the credentials."
        )

    @staticmethod
    def verification_write() -> "OperationalFailure":
        return OperationalFailure(
            "error-register-1102",
            "A critical error occurred adding the email confirmation code.",
        )

    @staticmethod
    def verification_consume() -> "OperationalFailure":
        return OperationalFailure(
            "error-token-2100", "A critical error occurred verifying the email."
        )

    @staticmethod
    def token_write() -> "OperationalFailure":
        return OperationalFailure(
            "error-token-2101", "A critical error occurred storing the session token."
        )

    @staticmethod
    def unexpected(msg: str = "") -> "OperationalFailure":
        return OperationalFailure("error-ident-1999", f"Unexpected error: {msg}")
