# murshid/services/oauth_bridge.py
"""
Reconciles a Google identity assertion with local accounts.

``decide`` is the pure decision table over (account exists, auth provider,
email verified, requested action); ``reconcile`` applies its outcome to the
store and issues the same session token as password login.

    exists  provider  verified  action   outcome
    ------  --------  --------  ------   -------------------------------
    yes     local     yes       login    reject UseLocalCredentials
    yes     google    -         signup   reject AlreadySignedUp
    yes     local     no        signup   upgrade to google, verify
    yes     google    -         login    update last login
    yes     local     yes       signup   reject UseLocalCredentials
    no      -         -         signup   create google account
    no      -         -         login    reject NoAccountFound
    anything else                        reject AuthenticationFailed
"""
import base64
import binascii
import datetime as dt
import json
import logging
import secrets
from dataclasses import dataclass
from enum import Enum

from starlette.concurrency import run_in_threadpool

from murshid.core.errors import (
    AlreadySignedUp,
    AppError,
    AuthenticationFailed,
    NoAccountFound,
    UseLocalCredentials,
    ValidationError,
)
from murshid.core.security import hash_password, unusable_password, utc_now
from murshid.models.user import User
from murshid.services import credential_store
from murshid.services.session_service import issue_session

logger = logging.getLogger(__name__)

ACTIONS = ("login", "signup")


@dataclass(frozen=True)
class GoogleIdentity:
    external_id: str
    email: str
    display_name: str = ""


class Outcome(str, Enum):
    REJECT = "reject"
    UPGRADE = "upgrade"
    UPDATE = "update"
    CREATE = "create"


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    error: type[AppError] | None = None


def decide(existing: User | None, action: str) -> Decision:
    if existing is not None:
        provider = existing.auth_provider
        verified = existing.is_email_verified
        if provider == "local" and verified and action == "login":
            return Decision(Outcome.REJECT, UseLocalCredentials)
        if provider == "google" and action == "signup":
            return Decision(Outcome.REJECT, AlreadySignedUp)
        if provider == "local" and not verified and action == "signup":
            return Decision(Outcome.UPGRADE)
        if provider == "google" and action == "login":
            return Decision(Outcome.UPDATE)
        if provider == "local" and verified and action == "signup":
            return Decision(Outcome.REJECT, UseLocalCredentials)
    elif action == "signup":
        return Decision(Outcome.CREATE)
    elif action == "login":
        return Decision(Outcome.REJECT, NoAccountFound)
    return Decision(Outcome.REJECT, AuthenticationFailed)


def split_name(full_name: str | None) -> tuple[str, str]:
    parts = (full_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def encode_state(action: str) -> str:
    """Opaque OAuth state carrying the requested action plus a nonce."""
    if action not in ACTIONS:
        action = "login"
    raw = json.dumps({"action": action, "nonce": secrets.token_urlsafe(16)}).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_state(state: str | None) -> str:
    """Recover the action from ``encode_state`` output; defaults to login."""
    if not state:
        return "login"
    try:
        padded = state + "=" * (-len(state) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        logger.warning("[oauth] undecodable state parameter, assuming login")
        return "login"
    action = data.get("action") if isinstance(data, dict) else None
    return action if action in ACTIONS else "login"


async def reconcile(identity: GoogleIdentity, action: str, now: dt.datetime | None = None) -> tuple[User, str]:
    """
    Apply the decision table for ``identity``.

    Raises the table's rejection error; otherwise returns the signed-in user
    and a fresh session token.
    """
    if not identity.email:
        raise ValidationError("No email found in Google profile")

    now = now or utc_now()
    existing = await credential_store.find_by_email(identity.email)
    decision = decide(existing, action)
    logger.info(
        "[oauth] email=%s action=%s exists=%s outcome=%s",
        credential_store.normalize_email(identity.email), action, existing is not None, decision.outcome.value,
    )

    if decision.outcome is Outcome.REJECT:
        raise decision.error()

    if decision.outcome is Outcome.UPGRADE:
        user = existing
        await credential_store.ensure_google_id_free(identity.external_id, user)
        user.auth_provider = "google"
        user.is_email_verified = True
        user.is_otp_signup = False
        user.google_id = identity.external_id
        user.otp_code = None
        user.otp_expires_at = None
        # Drop any password chosen before the address was verified
        user.password_hash = await run_in_threadpool(hash_password, unusable_password())
        user.last_login = now
        await user.save()
    elif decision.outcome is Outcome.UPDATE:
        user = existing
        if user.google_id and user.google_id != identity.external_id:
            logger.warning("[oauth] google id mismatch for user=%s", user.id)
            raise AuthenticationFailed()
        if not user.google_id:
            await credential_store.ensure_google_id_free(identity.external_id, user)
            user.google_id = identity.external_id
        user.last_login = now
        await user.save()
    else:
        first_name, last_name = split_name(identity.display_name)
        user = await credential_store.create_user(
            email=identity.email,
            first_name=first_name,
            last_name=last_name,
            google_id=identity.external_id,
            auth_provider="google",
            is_email_verified=True,
            password_hash=await run_in_threadpool(hash_password, unusable_password()),
            last_login=now,
        )

    return user, issue_session(user)
