# murshid/core/security.py
"""
Security module for authentication and authorization.
Handles password hashing, JWT session tokens, one-time codes and
password-reset tokens.
"""
import datetime as dt
import hashlib
import secrets

import jwt  # PyJWT
from passlib.context import CryptContext

from murshid.config import settings

# Password hashing context
# Argon2 only: salted, one-way, fixed cost parameters
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

# JWT configuration
JWT_SECRET = settings.jwt_secret
JWT_EXPIRES_IN_DAYS = settings.jwt_expires_in_days
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

OTP_LENGTH = 6


def utc_now() -> dt.datetime:
    """Current UTC time, timezone-aware."""
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime | None) -> dt.datetime | None:
    """Treat naive datetimes read back from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns False when no hash is stored (mid-OTP-signup accounts).
    """
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def unusable_password() -> str:
    """Random secret for accounts that never log in with a password."""
    return secrets.token_hex(16)


def create_access_token(user_id: str, email: str, role: str, now: dt.datetime | None = None) -> str:
    """
    Create a signed session token.

    Token payload includes:
        - sub: Subject (user ID)
        - email: User email
        - role: User role at issue time (informational; the guard re-reads it)
        - iat: Issued at, as a float timestamp so that a password change in
          the same second as issuance still revokes the token
        - exp: Expiration timestamp
    """
    now = now or utc_now()
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": now.timestamp(),
        "exp": now + dt.timedelta(days=JWT_EXPIRES_IN_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALG],
        options={"require": ["sub", "iat", "exp"]},
    )


def generate_otp() -> str:
    """Random six-digit numeric code in 100000..999999."""
    low = 10 ** (OTP_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def create_reset_token() -> tuple[str, str]:
    """
    Create a password reset token.

    Returns:
        (plain token to email to the user, SHA-256 digest to store)
    """
    raw = secrets.token_hex(32)
    return raw, hash_token(raw)
