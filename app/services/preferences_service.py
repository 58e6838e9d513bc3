from app.config import MAX_FOCUS_DURATION_MINUTES, MIN_FOCUS_DURATION_MINUTES
from app.db.update_builder import ABSENT
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import UserPreferences
from app.repositories.base import PreferencesRepository
from app.services.errors import InvalidModeError, NotFoundError, ValidationError
from app.services.reward_calculator import is_valid_focus_mode

logger = get_logger(__name__)


class PreferencesService:
    def __init__(self, repository: PreferencesRepository):
        self.repository = repository

    async def get_preferences(self, external_id: str) -> UserPreferences:
        preferences = await self.repository.get(external_id)
        if preferences is None:
            raise NotFoundError("Preferences not found", external_id=external_id)
        return preferences

    async def update_preferences(
        self, external_id: str, *, focus_duration_minutes=ABSENT, focus_mode=ABSENT
    ) -> UserPreferences:
        if focus_duration_minutes is ABSENT and focus_mode is ABSENT:
            raise ValidationError(
                "At least one of focusDurationMinutes or focusMode must be provided"
            )

        if focus_duration_minutes is not ABSENT:
            value = focus_duration_minutes
            if (
                isinstance(value, bool)
                or not isinstance(value, int)
                or not MIN_FOCUS_DURATION_MINUTES <= value <= MAX_FOCUS_DURATION_MINUTES
            ):
                raise ValidationError(
                    f"focusDurationMinutes must be an integer between "
                    f"{MIN_FOCUS_DURATION_MINUTES} and {MAX_FOCUS_DURATION_MINUTES}"
                )

        if focus_mode is not ABSENT and not is_valid_focus_mode(focus_mode):
            raise InvalidModeError()

        preferences = await self.repository.update(
            external_id,
            focus_duration_minutes=focus_duration_minutes,
            focus_mode=focus_mode,
        )
        if preferences is None:
            raise NotFoundError("Preferences not found", external_id=external_id)

        logger.info(
            "Preferences updated",
            external_id=external_id,
            focus_duration_minutes=preferences.focus_duration_minutes,
            focus_mode=preferences.focus_mode,
        )
        return preferences
