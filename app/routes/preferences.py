"""
preferences.py
--------------
Focus preferences for the authenticated user, plus the public focus-mode table.
"""

from fastapi import APIRouter, Depends

from app.auth.verify import auth_dependency
from app.db.update_builder import ABSENT
from app.dependencies import get_preferences_service
from app.models.api.user_request import UpdatePreferencesRequest
from app.models.domain.user_domain import UserPreferences
from app.services.preferences_service import PreferencesService
from app.services.reward_calculator import list_focus_modes
from app.utils.responses import success

router = APIRouter(prefix="/api", tags=["Preferences"])


def _preferences_body(preferences: UserPreferences) -> dict:
    return {
        "focusDurationMinutes": preferences.focus_duration_minutes,
        "focusMode": preferences.focus_mode,
        "updatedAt": preferences.updated_at,
    }


@router.get("/preferences")
async def get_preferences(
    external_id: str = Depends(auth_dependency),
    service: PreferencesService = Depends(get_preferences_service),
):
    preferences = await service.get_preferences(external_id)
    return success(_preferences_body(preferences))


@router.patch("/preferences")
async def update_preferences(
    body: UpdatePreferencesRequest,
    external_id: str = Depends(auth_dependency),
    service: PreferencesService = Depends(get_preferences_service),
):
    preferences = await service.update_preferences(
        external_id,
        focus_duration_minutes=(
            ABSENT if body.focus_duration_minutes is None else body.focus_duration_minutes
        ),
        focus_mode=ABSENT if body.focus_mode is None else body.focus_mode,
    )
    return success(_preferences_body(preferences))


@router.get("/focus-modes")
async def get_focus_modes():
    return success(list_focus_modes())
