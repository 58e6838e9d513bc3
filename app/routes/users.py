"""
users.py
--------
Profile endpoints for the authenticated user.

    GET    /api/users/me  - identity fields and balance summary
    PATCH  /api/users/me  - update display name
    DELETE /api/users/me  - delete the user and all co-owned records
"""

from fastapi import APIRouter, Depends

from app.auth.verify import auth_dependency
from app.db.update_builder import ABSENT
from app.dependencies import get_identity_service
from app.models.api.user_request import UpdateProfileRequest
from app.services.identity_service import IdentityService
from app.utils.responses import success

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me")
async def get_me(
    external_id: str = Depends(auth_dependency),
    identity: IdentityService = Depends(get_identity_service),
):
    profile = await identity.get_profile(external_id)
    user = profile.user
    return success(
        {
            "id": user.id,
            "email": user.email,
            "displayName": user.display_name,
            "subscriptionTier": user.subscription_tier,
            "subscriptionStatus": user.subscription_status,
            "subscriptionExpiresAt": user.subscription_expires_at,
            "createdAt": user.created_at,
            "balance": {
                "availableMinutes": profile.balance.available_minutes,
                "currentStreakDays": profile.balance.current_streak_days,
            },
        }
    )


@router.patch("/me")
async def update_me(
    body: UpdateProfileRequest,
    external_id: str = Depends(auth_dependency),
    identity: IdentityService = Depends(get_identity_service),
):
    user = await identity.update_profile(
        external_id,
        display_name=ABSENT if body.display_name is None else body.display_name,
    )
    return success(
        {
            "id": user.id,
            "email": user.email,
            "displayName": user.display_name,
            "updatedAt": user.updated_at,
        }
    )


@router.delete("/me")
async def delete_me(
    external_id: str = Depends(auth_dependency),
    identity: IdentityService = Depends(get_identity_service),
):
    await identity.delete_profile(external_id)
    return success({"deleted": True})
