# murshid/services/onboarding_service.py
"""
Onboarding and profile state.

``complete_onboarding`` writes the Profile first and only then flips
``User.onboarded``; Profile and User are separate tables and are not updated
in one transaction, so a failure in between leaves onboarded=False with a
saved profile, and the call can simply be repeated.
"""
import logging

from murshid.core.errors import DuplicateKey, ValidationError
from murshid.models.profile import DEFAULT_PROFILE_IMAGE, Profile
from murshid.models.user import User
from murshid.services import credential_store

logger = logging.getLogger(__name__)

# API name -> Profile column
PROFILE_FIELDS = {
    "gender": "gender",
    "dateOfBirth": "date_of_birth",
    "profileType": "profile_type",
    "class": "class_name",
    "syllabus": "syllabus",
    "school": "school",
    "bio": "bio",
    "profileImage": "profile_image",
}
USER_FIELDS = {"firstName": "first_name", "lastName": "last_name", "email": "email"}
REQUIRED_ONBOARDING_FIELDS = ("gender", "dateOfBirth", "profileType", "class", "syllabus", "school")


def profile_to_dict(profile: Profile | None) -> dict:
    """Serialize a profile; a missing one yields the defaults."""
    if profile is None:
        return {
            "gender": None,
            "dateOfBirth": None,
            "profileType": None,
            "class": None,
            "syllabus": None,
            "school": None,
            "bio": "",
            "profileImage": DEFAULT_PROFILE_IMAGE,
        }
    return {
        "gender": profile.gender,
        "dateOfBirth": profile.date_of_birth.isoformat() if profile.date_of_birth else None,
        "profileType": profile.profile_type,
        "class": profile.class_name,
        "syllabus": profile.syllabus,
        "school": profile.school,
        "bio": profile.bio,
        "profileImage": profile.profile_image,
    }


async def get_profile(user: User) -> Profile | None:
    return await Profile.get_or_none(user_id=user.id)


async def get_profile_or_defaults(user: User) -> dict:
    """Readers must tolerate onboarded users without a profile; nothing is created here."""
    return profile_to_dict(await get_profile(user))


async def upsert_profile(user: User, fields: dict) -> Profile:
    """Create the user's profile or merge ``fields`` (API names, None skipped) into it."""
    values = {PROFILE_FIELDS[k]: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not None}
    profile = await get_profile(user)
    if profile is None:
        return await Profile.create(user_id=user.id, **values)
    profile.update_from_dict(values)
    await profile.save()
    return profile


async def complete_onboarding(user: User, fields: dict) -> tuple[User, Profile]:
    missing = [name for name in REQUIRED_ONBOARDING_FIELDS if fields.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required profile fields: {', '.join(missing)}")

    profile = await upsert_profile(user, fields)
    user.onboarded = True
    await user.save()
    logger.info("[onboarding] completed for user id=%s", user.id)
    return user, profile


async def mark_onboarded(user: User) -> User:
    """Set the flag without profile data (federated users may skip the form)."""
    user.onboarded = True
    await user.save()
    return user


async def update_me(user: User, fields: dict) -> tuple[User, Profile | None]:
    """
    Update the caller's own name/email and profile fields.

    Password fields are refused here; they go through update-my-password.
    """
    if any(key in fields for key in ("password", "passwordConfirm", "newPassword")):
        raise ValidationError("This route is not for password updates. Please use /update-my-password.")

    changed = False
    for api_name, column in USER_FIELDS.items():
        value = fields.get(api_name)
        if value is None:
            continue
        if api_name == "email":
            value = credential_store.normalize_email(value)
            if not value:
                raise ValidationError("Please provide a valid email")
            if value != user.email and await credential_store.find_any_by_email(value):
                raise DuplicateKey(field="email")
        setattr(user, column, value.strip() if isinstance(value, str) else value)
        changed = True
    if changed:
        await user.save()

    if any(fields.get(k) is not None for k in PROFILE_FIELDS):
        profile = await upsert_profile(user, fields)
    else:
        profile = await get_profile(user)
    return user, profile

