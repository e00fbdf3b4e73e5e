# murshid/services/otp_service.py
"""
One-time codes bound to an email address.

State per account: Idle (no code) -> Issued (code + expiry stored on the
User) -> Idle again on successful verification. A wrong or expired code
leaves the stored code untouched; re-requesting overwrites it and restarts
the timer.
"""
import datetime as dt
import logging
import secrets
from dataclasses import dataclass

from murshid.config import settings
from murshid.core.errors import DuplicateKey, Forbidden, InvalidOtp, NotFound, OtpExpired, ValidationError
from murshid.core.security import as_utc, generate_otp, utc_now
from murshid.models.user import User
from murshid.services import credential_store, email_service
from murshid.services.session_service import issue_session, validate_new_password

logger = logging.getLogger(__name__)

PURPOSES = ("signup", "reset")
OTP_EMAIL_SUBJECT = "Your OTP for Murshid"


@dataclass
class OtpVerification:
    user: User
    purpose: str
    requires_password_setup: bool
    token: str | None


def _check_purpose(purpose: str) -> str:
    if purpose not in PURPOSES:
        raise ValidationError(f"Invalid OTP type '{purpose}'. Expected one of: {', '.join(PURPOSES)}")
    return purpose


async def _clear_otp_quietly(user: User) -> None:
    user.otp_code = None
    user.otp_expires_at = None
    try:
        await user.save()
    except Exception:
        logger.exception("[otp] could not clear OTP after failed request for user id=%s", user.id)


async def signup(first_name: str, last_name: str, email: str, password: str) -> User:
    """
    Password signup: create (or refresh) an unverified local account, then
    send a signup code. The account cannot log in until the code is verified.
    """
    if not email:
        raise ValidationError("Please provide an email address")
    validate_new_password(password)

    user = await credential_store.find_by_email(email)
    if user is not None and user.is_email_verified:
        raise DuplicateKey("This email is already registered. Please login instead.", code="ALREADY_REGISTERED")

    if user is None:
        user = await credential_store.create_local_user(email, first_name, last_name, password)
    else:
        user.first_name = (first_name or user.first_name or "").strip()
        user.last_name = (last_name or user.last_name or "").strip()
        await credential_store.set_password(user, password)

    return await request_otp(user.email, "signup")


async def request_otp(
    email: str,
    purpose: str,
    first_name: str | None = None,
    last_name: str | None = None,
    now: dt.datetime | None = None,
) -> User:
    """
    Issue a fresh code for ``email`` and send it.

    signup: an already verified email is rejected; an unknown email gets a
    new passwordless, unverified account.
    reset: the account must exist.
    """
    _check_purpose(purpose)
    if not email:
        raise ValidationError("Please provide an email address")

    user = await credential_store.find_by_email(email)
    if purpose == "signup":
        if user is not None and user.is_email_verified:
            raise DuplicateKey("This email is already registered. Please login instead.", code="ALREADY_REGISTERED")
        if user is None:
            user = await credential_store.create_local_user(email, first_name, last_name, None)
            logger.info("[otp] created OTP signup account id=%s", user.id)
        else:
            user.first_name = (first_name or user.first_name or "").strip()
            user.last_name = (last_name or user.last_name or "").strip()
    elif user is None:
        raise NotFound("No account found with this email. Please sign up first.", code="USER_NOT_FOUND")

    now = now or utc_now()
    code = generate_otp()
    user.otp_code = code
    user.otp_expires_at = now + dt.timedelta(minutes=settings.otp_ttl_minutes)
    await user.save()

    message = f"Your OTP is: {code}. It will expire in {settings.otp_ttl_minutes} minutes."
    try:
        await email_service.send_email(user.email, OTP_EMAIL_SUBJECT, message)
    except Exception:
        await _clear_otp_quietly(user)
        raise

    logger.info("[otp] %s code issued for user id=%s", purpose, user.id)
    return user


async def verify_otp(email: str, code: str, purpose: str = "signup", now: dt.datetime | None = None) -> OtpVerification:
    """
    Check ``code`` against the stored one; valid strictly before expiry.

    On success the code is consumed. A signup verification marks the email
    verified and issues a session unless the account still has no password.
    """
    _check_purpose(purpose)
    if not email or not code:
        raise ValidationError("Please provide email and OTP")

    user = await credential_store.find_by_email(email)
    if user is None:
        raise NotFound("User not found with this email", code="USER_NOT_FOUND")

    if not user.otp_code or not secrets.compare_digest(str(code).strip(), user.otp_code):
        raise InvalidOtp()
    expires_at = as_utc(user.otp_expires_at)
    if expires_at is None or (now or utc_now()) >= expires_at:
        raise OtpExpired()

    user.otp_code = None
    user.otp_expires_at = None

    requires_password_setup = False
    token = None
    if purpose == "signup":
        user.is_email_verified = True
        if user.is_otp_signup:
            requires_password_setup = True
        else:
            token = issue_session(user)
    else:
        token = issue_session(user)

    await user.save()
    logger.info("[otp] %s code verified for user id=%s", purpose, user.id)
    return OtpVerification(user, purpose, requires_password_setup, token)


async def setup_password(
    email: str,
    password: str,
    password_confirm: str,
    acting_user: User | None = None,
) -> tuple[User, str]:
    """
    Set the password after OTP verification.

    Allowed for a verified OTP signup that has no password yet, or for the
    holder of a session for the same account (the token handed out by a reset
    verification).
    """
    if not email or not password or not password_confirm:
        raise ValidationError("Please provide email, password, and password confirmation")
    if password != password_confirm:
        raise ValidationError("Passwords do not match")
    validate_new_password(password)

    user = await credential_store.find_by_email(email)
    if user is None:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    if not user.is_email_verified:
        raise ValidationError("Please verify your email before setting your password")
    if not user.is_otp_signup and (acting_user is None or acting_user.id != user.id):
        raise Forbidden("Verify the code sent to your email before setting a new password")

    user.reset_token = None
    user.reset_token_expires_at = None
    await credential_store.set_password(user, password)
    return user, issue_session(user)
