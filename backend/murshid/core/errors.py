# murshid/core/errors.py
"""
Domain error taxonomy and the JSON error envelope.

Every failure a handler can produce is one of the ``AppError`` subclasses
below. They are raised from services and translated exactly once, at the
outermost request boundary, into::

    {"status": "error", "message": ..., "error": <kind>, "code": <code>}

with the HTTP status carried by the error kind.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from tortoise.exceptions import IntegrityError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for every error kind rendered to clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str | None = None
    default_message: str = "Something went wrong. Please try again later."

    def __init__(self, message: str | None = None, *, code: str | None = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    default_message = "Incorrect email or password"


class EmailNotVerified(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "EMAIL_NOT_VERIFIED"
    default_message = "Please verify your email address before logging in"


class DuplicateKey(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "DUPLICATE_KEY"
    default_message = "Duplicate field value. Please use another value."

    def __init__(self, message: str | None = None, *, field: str | None = None, code: str | None = None):
        self.field = field
        if message is None and field:
            message = f"Duplicate {field}. This {field} is already in use."
        super().__init__(message, code=code)


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class InvalidOtp(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_OTP"
    default_message = "Invalid OTP. Please try again."


class OtpExpired(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "OTP_EXPIRED"
    default_message = "OTP has expired. Please request a new one."


class UseLocalCredentials(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "USE_LOCAL_CREDENTIALS"
    default_message = "Email registered with password. Use email & password to sign in."


class AlreadySignedUp(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ALREADY_SIGNED_UP"
    default_message = "Already signed up with Google. Please sign in."


class NoAccountFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NO_ACCOUNT_FOUND"
    default_message = "No account found with this Google account. Please sign up first."


class AuthenticationFailed(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_FAILED"
    default_message = "Authentication failed. Please try again."


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "You are not logged in. Please log in to get access."


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid input data"


class EmailDispatchFailure(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "EMAIL_DISPATCH_FAILURE"
    default_message = "There was an error sending the email. Please try again later!"


def error_payload(exc: AppError) -> dict:
    body = {"status": "error", "message": exc.message, "error": exc.kind}
    if exc.code:
        body["code"] = exc.code
    return body


def error_response(exc: AppError) -> JSONResponse:
    """Render a domain error as the shared JSON envelope."""
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


def _describe_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid input data. " + ". ".join(parts)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[%s %s] %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = ValidationError(_describe_validation(exc))
    payload = error_payload(err)
    payload["details"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=err.status_code, content=payload)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("[%s %s] integrity error: %s", request.method, request.url.path, exc)
    return error_response(DuplicateKey())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[%s %s] unhandled error", request.method, request.url.path)
    return error_response(AppError())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
