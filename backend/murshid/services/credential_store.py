# murshid/services/credential_store.py
"""
Credential store: the only place that reads and writes User records for
authentication purposes.

Soft-deleted accounts (``active=False`` or ``is_deleted=True``) are excluded
by an explicit predicate applied in every read below; only
``find_any_by_email`` bypasses it, for privileged lookups.
"""
import logging

from starlette.concurrency import run_in_threadpool
from tortoise.exceptions import IntegrityError

from murshid.core.errors import DuplicateKey
from murshid.core.security import hash_password, utc_now
from murshid.models.user import User

logger = logging.getLogger(__name__)

ACTIVE_FILTER = {"active": True, "is_deleted": False}


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(user: User) -> dict:
    """User fields safe to return to clients (never the password hash)."""
    return {
        "id": str(user.id),
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": user.role,
        "authProvider": user.auth_provider,
        "isEmailVerified": user.is_email_verified,
        "onboarded": user.onboarded,
        "lastLogin": user.last_login.isoformat() if user.last_login else None,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


async def find_by_email(email: str) -> User | None:
    return await User.filter(email=normalize_email(email), **ACTIVE_FILTER).first()


async def find_by_external_id(external_id: str) -> User | None:
    if not external_id:
        return None
    return await User.filter(google_id=external_id, **ACTIVE_FILTER).first()


async def find_by_id(user_id) -> User | None:
    return await User.filter(id=user_id, **ACTIVE_FILTER).first()


async def find_any_by_email(email: str) -> User | None:
    """Privileged lookup that also sees soft-deleted accounts."""
    return await User.filter(email=normalize_email(email)).first()


async def list_users() -> list[User]:
    return await User.filter(**ACTIVE_FILTER).order_by("-created_at")


async def _ensure_unique(email: str, google_id: str | None = None) -> None:
    # Soft-deleted rows still hold their unique keys, so check without the filter
    if await User.filter(email=email).exists():
        raise DuplicateKey(field="email")
    if google_id and await User.filter(google_id=google_id).exists():
        raise DuplicateKey(field="googleId")


async def ensure_google_id_free(google_id: str, owner: User) -> None:
    """Raise DuplicateKey when ``google_id`` belongs to a row other than ``owner``."""
    if await User.filter(google_id=google_id).exclude(id=owner.id).exists():
        raise DuplicateKey(field="googleId")


async def create_user(**fields) -> User:
    """Insert a user, mapping unique-key violations to DuplicateKey."""
    fields["email"] = normalize_email(fields["email"])
    await _ensure_unique(fields["email"], fields.get("google_id"))
    try:
        return await User.create(**fields)
    except IntegrityError as exc:
        # Lost a race against a concurrent insert of the same key
        logger.warning("[credentials] integrity error creating %s: %s", fields["email"], exc)
        raise DuplicateKey(field="email") from exc


async def create_local_user(
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
    password: str | None = None,
) -> User:
    """
    Create an unverified local account.

    Without a password the account is an OTP signup that must set one after
    verifying its email.
    """
    return await create_user(
        email=email,
        first_name=(first_name or "").strip(),
        last_name=(last_name or "").strip(),
        auth_provider="local",
        password_hash=await run_in_threadpool(hash_password, password) if password else None,
        is_otp_signup=password is None,
        is_email_verified=False,
    )


async def set_password(user: User, plaintext: str) -> User:
    """Hash and store a new password; sessions issued before now stop working."""
    user.password_hash = await run_in_threadpool(hash_password, plaintext)
    user.password_changed_at = utc_now()
    user.is_otp_signup = False
    await user.save()
    return user


async def mark_email_verified(user: User) -> User:
    user.is_email_verified = True
    await user.save()
    return user


async def touch_last_login(user: User) -> User:
    user.last_login = utc_now()
    await user.save()
    return user


async def soft_delete(user: User) -> User:
    """Hide the account from every find without removing the row."""
    user.active = False
    user.is_deleted = True
    await user.save()
    logger.info("[credentials] soft-deleted user id=%s", user.id)
    return user


async def find_by_reset_token(token_hash: str, now) -> User | None:
    return await User.filter(
        reset_token=token_hash,
        reset_token_expires_at__gt=now,
        **ACTIVE_FILTER,
    ).first()
