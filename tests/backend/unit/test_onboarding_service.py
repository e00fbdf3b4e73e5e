"""
Unit tests for onboarding and profile updates.
"""
import datetime as dt

import pytest

from murshid.core.errors import DuplicateKey, ValidationError
from murshid.models.profile import Profile
from murshid.models.user import User
from murshid.services import onboarding_service

pytestmark = pytest.mark.asyncio

PROFILE = {
    "gender": "Female",
    "dateOfBirth": dt.date(2008, 4, 1),
    "profileType": "Student",
    "class": "10",
    "syllabus": "CBSE",
    "school": "City High",
}


async def test_complete_onboarding_creates_profile_and_sets_flag(create_user):
    user, _ = await create_user()

    user, profile = await onboarding_service.complete_onboarding(user, dict(PROFILE, bio="Hi"))

    assert (await User.get(id=user.id)).onboarded is True
    stored = await Profile.get(user_id=user.id)
    assert stored.class_name == "10"
    assert stored.bio == "Hi"
    assert stored.profile_image == "default.jpg"


async def test_complete_onboarding_merges_into_existing_profile(create_user):
    user, _ = await create_user()
    await onboarding_service.upsert_profile(user, {"school": "Old School", "bio": "keep me"})

    await onboarding_service.complete_onboarding(user, PROFILE)

    assert await Profile.filter(user_id=user.id).count() == 1
    stored = await Profile.get(user_id=user.id)
    assert stored.school == "City High"
    assert stored.bio == "keep me"


async def test_missing_fields_leave_user_not_onboarded(create_user):
    user, _ = await create_user()
    with pytest.raises(ValidationError):
        await onboarding_service.complete_onboarding(user, {"gender": "Male"})
    assert (await User.get(id=user.id)).onboarded is False
    assert not await Profile.filter(user_id=user.id).exists()


async def test_failed_profile_write_leaves_user_not_onboarded(create_user, monkeypatch):
    user, _ = await create_user()

    async def _boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(onboarding_service, "upsert_profile", _boom)
    with pytest.raises(RuntimeError):
        await onboarding_service.complete_onboarding(user, PROFILE)
    assert (await User.get(id=user.id)).onboarded is False


async def test_mark_onboarded_without_profile_reads_defaults(create_user):
    user, _ = await create_user(auth_provider="google")
    await onboarding_service.mark_onboarded(user)

    assert (await User.get(id=user.id)).onboarded is True
    defaults = await onboarding_service.get_profile_or_defaults(user)
    assert defaults["profileImage"] == "default.jpg"
    assert defaults["bio"] == ""
    assert defaults["gender"] is None
    assert not await Profile.filter(user_id=user.id).exists()


async def test_update_me_rejects_password_fields(create_user):
    user, _ = await create_user()
    with pytest.raises(ValidationError):
        await onboarding_service.update_me(user, {"password": "x"})


async def test_update_me_names_and_email(create_user):
    user, _ = await create_user()
    other, _ = await create_user(email="taken@example.com")

    updated, profile = await onboarding_service.update_me(user, {"firstName": "Grace", "email": " New@Example.com "})
    assert updated.first_name == "Grace"
    assert updated.email == "new@example.com"
    assert profile is None

    with pytest.raises(DuplicateKey):
        await onboarding_service.update_me(user, {"email": other.email})


async def test_update_me_refuses_blank_email(create_user):
    user, _ = await create_user(email="keep@example.com")
    with pytest.raises(ValidationError):
        await onboarding_service.update_me(user, {"email": "   "})
    assert (await User.get(id=user.id)).email == "keep@example.com"


async def test_update_me_profile_fields(create_user):
    user, _ = await create_user()
    _, profile = await onboarding_service.update_me(user, {"school": "Night School"})
    assert profile.school == "Night School"
    assert onboarding_service.profile_to_dict(profile)["school"] == "Night School"
