# shared/errors.py
import enum
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.app_logger import get_logger

logger = get_logger("errors")


class ErrorCode(str, enum.Enum):
    MISSING_REQUIRED_FIELDS = "missing_required_fields"
    INVALID_INPUT = "invalid_input"
    EMAIL_EXISTS = "email_exists"
    IDENTIFIER_COLLISION = "identifier_collision"
    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_MALFORMED = "token_malformed"
    BAD_SIGNATURE = "bad_signature"
    TRANSACTION_FAILED = "transaction_failed"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"
    INTERNAL = "internal_error"


class IdentityError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, code: ErrorCode, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class ValidationError(IdentityError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(IdentityError):
    status_code = status.HTTP_409_CONFLICT


class AuthError(IdentityError):
    status_code = status.HTTP_401_UNAUTHORIZED

    @classmethod
    def invalid_credentials(cls) -> "AuthError":
        # One message for unknown email, role mismatch and wrong password.
        return cls(ErrorCode.INVALID_CREDENTIALS, "Invalid credentials")


class InternalError(IdentityError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CredentialConfigurationError(InternalError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.CONFIGURATION, message)


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Map domain errors onto HTTP responses."""

    @app.exception_handler(IdentityError)
    async def handle_identity_error(request: Request, exc: IdentityError):
        body = {"detail": exc.message, "code": exc.code.value}
        if isinstance(exc, InternalError):
            logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
            if not debug:
                body["detail"] = "Internal server error"
        elif exc.details is not None:
            body["errors"] = exc.details
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return JSONResponse(status_code=exc.status_code, content=body, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        missing = [e for e in errors if e.get("type") == "missing"]
        code = ErrorCode.MISSING_REQUIRED_FIELDS if missing else ErrorCode.INVALID_INPUT
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request data",
                "code": code.value,
                "errors": [
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
                    for e in errors
                ],
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        detail = str(exc) if debug else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": detail, "code": ErrorCode.INTERNAL.value},
        )
