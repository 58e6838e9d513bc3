# app/models/api/user_request.py
"""
Request bodies for the authenticated API.

Fields are strict: JSON floats, strings and booleans are never coerced into
integers. That includes integral floats, so `25.0` is rejected with a 400 and
clients must send `25`. Optional fields default to None but reject an explicit null, so None
always means "not provided".
"""

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from app.config import MAX_FOCUS_DURATION_MINUTES, MIN_FOCUS_DURATION_MINUTES
from app.models.domain.user_domain import FocusMode


class SetBalanceRequest(BaseModel):
    """Body for PATCH /api/balance."""

    model_config = ConfigDict(populate_by_name=True)

    available_minutes: StrictInt = Field(..., alias="availableMinutes", ge=0)


class UpdatePreferencesRequest(BaseModel):
    """Body for PATCH /api/preferences; at least one field required."""

    model_config = ConfigDict(populate_by_name=True)

    focus_duration_minutes: StrictInt = Field(
        None,
        alias="focusDurationMinutes",
        ge=MIN_FOCUS_DURATION_MINUTES,
        le=MAX_FOCUS_DURATION_MINUTES,
    )
    focus_mode: FocusMode = Field(None, alias="focusMode")

    @model_validator(mode="after")
    def _require_one_field(self):
        if self.focus_duration_minutes is None and self.focus_mode is None:
            raise ValueError("At least one of focusDurationMinutes or focusMode must be provided")
        return self


class UpdateProfileRequest(BaseModel):
    """Body for PATCH /api/users/me."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: StrictStr = Field(None, alias="displayName", max_length=100)
