# murshid/services/session_service.py
"""
Session issuance and validation.

Every successful authentication path (password login, OTP verification,
password setup/reset, Google sign-in) ends in ``issue_session``. Tokens are
stateless; the only server-side revocation is ``password_changed_at``.
"""
import datetime as dt
import logging
import uuid

import jwt
from starlette.concurrency import run_in_threadpool

from murshid.config import settings
from murshid.core.errors import (
    EmailNotVerified,
    Forbidden,
    InvalidCredentials,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from murshid.core.security import (
    as_utc,
    create_access_token,
    create_reset_token,
    decode_access_token,
    hash_token,
    utc_now,
    verify_password,
)
from murshid.models.user import User
from murshid.services import credential_store, email_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def issue_session(user: User, now: dt.datetime | None = None) -> str:
    return create_access_token(str(user.id), user.email, user.role, now=now)


def validate_new_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return password


async def login(email: str, password: str) -> tuple[User, str]:
    """
    Authenticate with email and password.

    The response never distinguishes an unknown email from a wrong password;
    the log does.
    """
    if not email or not password:
        raise ValidationError("Please provide email and password!")

    user = await credential_store.find_by_email(email)
    if user is None:
        logger.info("[login] no active account for %s", credential_store.normalize_email(email))
        raise InvalidCredentials()
    if not await run_in_threadpool(verify_password, password, user.password_hash):
        logger.info("[login] wrong password for user id=%s", user.id)
        raise InvalidCredentials()
    if not user.is_email_verified:
        raise EmailNotVerified()

    await credential_store.touch_last_login(user)
    return user, issue_session(user)


async def protect(token: str | None) -> User:
    """
    Resolve a session token to the current, active user.

    The user (and therefore the role) is always re-read from the store;
    claims embedded in the token are not trusted beyond identity and iat.
    """
    if not token:
        raise Unauthenticated()

    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Your token has expired! Please log in again.", code="TOKEN_EXPIRED")
    except jwt.PyJWTError:
        raise Unauthenticated("Invalid token. Please log in again!", code="INVALID_TOKEN")

    try:
        user_id = uuid.UUID(str(payload["sub"]))
        issued_at = float(payload["iat"])
    except (KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid token. Please log in again!", code="INVALID_TOKEN")

    user = await credential_store.find_by_id(user_id)
    if user is None:
        raise Unauthenticated("The user belonging to this token no longer exists.", code="USER_NOT_FOUND")

    changed_at = as_utc(user.password_changed_at)
    if changed_at is not None and changed_at.timestamp() > issued_at:
        raise Unauthenticated("User recently changed password! Please log in again.", code="PASSWORD_CHANGED")

    return user


def restrict_to(user: User, *roles: str) -> User:
    if user.role not in roles:
        raise Forbidden()
    return user


async def check_email(email: str, check_verified: bool = False) -> dict:
    user = await credential_store.find_by_email(email)
    exists = user is not None and (user.is_email_verified or not check_verified)
    return {
        "exists": exists,
        "isVerified": bool(user and user.is_email_verified),
        "isLocal": bool(user and user.auth_provider == "local"),
        "user": {"firstName": user.first_name, "lastName": user.last_name} if user else None,
    }


async def forgot_password(email: str, now: dt.datetime | None = None) -> User:
    """Email a single-use reset link; only the token's digest is stored."""
    user = await credential_store.find_by_email(email)
    if user is None:
        raise NotFound("There is no user with that email address.", code="USER_NOT_FOUND")

    now = now or utc_now()
    raw_token, digest = create_reset_token()
    user.reset_token = digest
    user.reset_token_expires_at = now + dt.timedelta(minutes=settings.reset_token_ttl_minutes)
    await user.save()

    reset_url = f"{settings.frontend_url}/reset-password/{raw_token}"
    message = (
        "Forgot your password? Open the link below to choose a new one:\n"
        f"{reset_url}\n"
        f"The link is valid for {settings.reset_token_ttl_minutes} minutes. "
        "If you didn't request this, please ignore this email."
    )
    try:
        await email_service.send_email(user.email, "Your password reset link", message)
    except Exception:
        await _clear_reset_token_quietly(user)
        raise
    return user


async def _clear_reset_token_quietly(user: User) -> None:
    user.reset_token = None
    user.reset_token_expires_at = None
    try:
        await user.save()
    except Exception:
        logger.exception("[reset] could not clear reset token for user id=%s", user.id)


async def reset_password(raw_token: str, password: str, now: dt.datetime | None = None) -> tuple[User, str]:
    validate_new_password(password)
    user = await credential_store.find_by_reset_token(hash_token(raw_token or ""), now or utc_now())
    if user is None:
        raise ValidationError("Token is invalid or has expired", code="INVALID_RESET_TOKEN")

    user.reset_token = None
    user.reset_token_expires_at = None
    await credential_store.set_password(user, password)
    logger.info("[reset] password reset for user id=%s", user.id)
    return user, issue_session(user)


async def update_password(user: User, current_password: str, new_password: str) -> tuple[User, str]:
    if not await run_in_threadpool(verify_password, current_password or "", user.password_hash):
        raise InvalidCredentials("Your current password is wrong.", code="WRONG_CURRENT_PASSWORD")
    validate_new_password(new_password)
    await credential_store.set_password(user, new_password)
    return user, issue_session(user)
