import pytest

from app.config import FOCUS_MODES
from app.services.errors import InvalidModeError, ValidationError
from app.services.reward_calculator import (
    compute_reward,
    get_multiplier,
    is_valid_focus_mode,
    list_focus_modes,
)


def test_focus_mode_multipliers():
    assert get_multiplier("fun") == 150
    assert get_multiplier("easy") == 100
    assert get_multiplier("medium") == 50
    assert get_multiplier("hard") == 25


@pytest.mark.parametrize("mode", ["fun", "easy", "medium", "hard"])
def test_valid_modes(mode):
    assert is_valid_focus_mode(mode)


@pytest.mark.parametrize("mode", ["invalid", "", "EASY", "Fun", None, 1])
def test_invalid_modes(mode):
    assert not is_valid_focus_mode(mode)


@pytest.mark.parametrize(
    ("duration", "mode", "expected"),
    [
        (60, "fun", 90),
        (60, "easy", 60),
        (60, "medium", 30),
        (60, "hard", 15),
    ],
)
def test_reward_for_one_hour(duration, mode, expected):
    assert compute_reward(duration, mode) == expected


def test_reward_rounds_half_up():
    """22.5 and 49.5 both round up, unlike Python's round()."""
    assert compute_reward(45, "medium") == 23
    assert compute_reward(33, "fun") == 50
    assert compute_reward(2, "hard") == 1


@pytest.mark.parametrize("mode", list(FOCUS_MODES))
def test_zero_duration_earns_nothing(mode):
    assert compute_reward(0, mode) == 0


@pytest.mark.parametrize("mode", list(FOCUS_MODES))
def test_reward_is_monotonic_in_duration(mode):
    rewards = [compute_reward(minutes, mode) for minutes in range(0, 241)]
    assert rewards == sorted(rewards)


def test_unknown_mode_is_rejected():
    with pytest.raises(InvalidModeError):
        compute_reward(60, "EASY")
    with pytest.raises(InvalidModeError):
        get_multiplier("invalid")


@pytest.mark.parametrize("duration", [-1, 2.5, True, "60"])
def test_bad_duration_is_rejected(duration):
    with pytest.raises(ValidationError):
        compute_reward(duration, "easy")


def test_list_focus_modes_exposes_closed_table():
    modes = {entry["mode"]: entry["multiplier"] for entry in list_focus_modes()}
    assert modes == {"fun": 150, "easy": 100, "medium": 50, "hard": 25}
