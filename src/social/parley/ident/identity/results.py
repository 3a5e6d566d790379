from typing import Optional

from pydantic import BaseModel, Field

from social.parley.ident.identity.errors import IdentityException, OperationalFailure


class OperationResult(BaseModel):
    """
    Outcome of a caller-facing operation.

    error_code is only set for failures and is meant for logs and metrics.
    operational marks failures caused by the service rather than the caller.
    Neither is included when the result is serialized for HTTP responses.
    """

    success: bool
    message: str
    error_code: Optional[str] = Field(default=None, exclude=True)
    operational: bool = Field(default=False, exclude=True)

    @classmethod
    def succeeded(cls, message: str) -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(
        cls,
        message: str,
        error_code: Optional[str] = None,
        operational: bool = False,
    ) -> "OperationResult":
        return cls(
            success=False,
            message=message,
            error_code=error_code,
            operational=operational,
        )

    @classmethod
    def from_exception(cls, e: IdentityException) -> "OperationResult":
        return cls.failed(
            e.caller_message,
            error_code=e.code,
            operational=isinstance(e, OperationalFailure),
        )


class TokenResponse(BaseModel):
    token_id: Optional[str] = None
    result: OperationResult
