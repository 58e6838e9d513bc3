"""
Reward calculation for completed focus sessions.

reward = round(duration_minutes * multiplier / 100), rounding halves up
(22.5 -> 23, 49.5 -> 50). Multipliers come from the closed FOCUS_MODES
table; they are looked up, never computed.
"""

from decimal import ROUND_HALF_UP, Decimal

from app.config import FOCUS_MODES
from app.services.errors import InvalidModeError, ValidationError


def is_valid_focus_mode(mode: object) -> bool:
    """Case-sensitive membership test against the closed mode table."""
    return isinstance(mode, str) and mode in FOCUS_MODES


def get_multiplier(mode: str) -> int:
    if not is_valid_focus_mode(mode):
        raise InvalidModeError()
    return FOCUS_MODES[mode]["multiplier"]


def compute_reward(duration_minutes: int, mode: str) -> int:
    """
    Convert a focus duration into reward minutes.

    Raises:
        InvalidModeError: mode is not one of the configured focus modes
        ValidationError: duration is negative or not an integer
    """
    multiplier = get_multiplier(mode)

    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("durationMinutes must be a non-negative integer")
    if duration_minutes < 0:
        raise ValidationError("durationMinutes must be a non-negative integer")

    reward = Decimal(duration_minutes * multiplier) / Decimal(100)
    return int(reward.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def list_focus_modes() -> list[dict]:
    return [
        {
            "mode": mode,
            "multiplier": entry["multiplier"],
            "displayName": entry["display_name"],
            "description": entry["description"],
        }
        for mode, entry in FOCUS_MODES.items()
    ]
