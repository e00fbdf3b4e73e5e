# murshid/core/bootstrap.py
"""
Bootstrap module for application initialization.
Handles initial setup tasks such as creating the default admin on first startup.
"""
import logging

from murshid.config import settings
from murshid.models.user import User
from murshid.services import credential_store

logger = logging.getLogger(__name__)


async def ensure_default_admin() -> User | None:
    """
    If no admin exists in the database, create a default admin from settings.
    Only takes effect under the following conditions:
      - Currently no active user with role="admin"
      - And ADMIN_PASSWORD is set (to avoid using a default weak password)
    The admin is a verified local account and can log in immediately.
    """
    if await User.filter(role="admin", **credential_store.ACTIVE_FILTER).exists():
        return None

    if not settings.admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return None

    # A regular account may already own the address; promote it instead
    existing = await credential_store.find_by_email(settings.admin_email)
    if existing is not None:
        existing.role = "admin"
        existing.is_email_verified = True
        await existing.save()
        logger.warning("[bootstrap] Promoted existing user to admin -> email=%s id=%s", existing.email, existing.id)
        return existing

    user = await credential_store.create_local_user(settings.admin_email, "Admin", "", settings.admin_password)
    user.role = "admin"
    user.is_email_verified = True
    await user.save()
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", user.email, user.id)
    return user
