# murshid/api/v1/routers/users.py
import logging
import uuid

from fastapi import APIRouter, Depends, Response, status

from murshid.api.v1.deps import get_current_user, require_admin
from murshid.core.errors import NotFound
from murshid.models.user import User
from murshid.schemas.user import OnboardingIn, UpdateMeIn
from murshid.services import credential_store, onboarding_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


async def _user_with_profile(user: User, profile=None) -> dict:
    data = credential_store.public_user(user)
    if profile is None:
        data["profile"] = await onboarding_service.get_profile_or_defaults(user)
    else:
        data["profile"] = onboarding_service.profile_to_dict(profile)
    return data


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """
    Current user with their onboarding profile.

    Users who skipped onboarding (e.g. via Google) have no stored profile;
    defaults are returned in its place.
    """
    return {"status": "success", "data": {"user": await _user_with_profile(user)}}


@router.patch("/update-me")
async def update_me(body: UpdateMeIn, user: User = Depends(get_current_user)):
    user, profile = await onboarding_service.update_me(user, body.fields())
    return {"status": "success", "data": {"user": await _user_with_profile(user, profile)}}


@router.post("/onboarding")
async def complete_onboarding(body: OnboardingIn, user: User = Depends(get_current_user)):
    user, profile = await onboarding_service.complete_onboarding(user, body.fields())
    return {
        "status": "success",
        "message": "Onboarding completed successfully",
        "data": {"user": await _user_with_profile(user, profile)},
    }


@router.patch("/me/onboarded")
async def mark_onboarded(user: User = Depends(get_current_user)):
    user = await onboarding_service.mark_onboarded(user)
    return {"status": "success", "data": {"user": credential_store.public_user(user)}}


@router.delete("/delete-me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(user: User = Depends(get_current_user)):
    await credential_store.soft_delete(user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== Admin =====

async def _get_user_or_404(user_id: uuid.UUID) -> User:
    user = await credential_store.find_by_id(user_id)
    if user is None:
        raise NotFound("No user found with that ID")
    return user


@router.get("", dependencies=[Depends(require_admin)])
async def list_users():
    users = await credential_store.list_users()
    return {"status": "success", "results": len(users), "data": {"users": [credential_store.public_user(u) for u in users]}}


@router.get("/{user_id}", dependencies=[Depends(require_admin)])
async def get_user(user_id: uuid.UUID):
    user = await _get_user_or_404(user_id)
    return {"status": "success", "data": {"user": await _user_with_profile(user)}}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: uuid.UUID, admin: User = Depends(require_admin)):
    """Permanently remove an account and every row it owns."""
    user = await _get_user_or_404(user_id)
    await user.delete()
    logger.info("[admin] user id=%s deleted by admin id=%s", user_id, admin.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
