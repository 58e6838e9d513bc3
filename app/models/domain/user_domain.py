from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FocusMode = Literal["fun", "easy", "medium", "hard"]


class User(BaseModel):
    """Identity record mirrored from Clerk."""

    model_config = ConfigDict(extra="ignore")

    id: str
    clerk_user_id: str
    email: str | None = None
    display_name: str | None = None
    subscription_tier: Literal["free", "premium"] = "free"
    subscription_status: Literal["none", "active", "expired", "cancelled"] = "none"
    subscription_expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UserBalance(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    available_minutes: int = Field(ge=0)
    current_streak_days: int = Field(ge=0)
    last_session_date: date | None = None
    updated_at: datetime


class TodaySummary(BaseModel):
    earned_minutes: int = 0
    spent_minutes: int = 0
    sessions_completed: int = 0
    sessions_failed: int = 0


class BalanceSnapshot(BaseModel):
    """Balance plus same-day aggregates, read at a single point in time."""

    available_minutes: int
    current_streak_days: int
    last_session_date: date | None = None
    updated_at: datetime
    today: TodaySummary


class UserStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    total_sessions_completed: int = 0
    total_sessions_failed: int = 0
    total_focus_minutes: int = 0
    total_earned_minutes: int = 0
    total_spent_minutes: int = 0
    longest_streak_days: int = 0
    longest_session_minutes: int = 0
    sessions_fun_mode: int = 0
    sessions_easy_mode: int = 0
    sessions_medium_mode: int = 0
    sessions_hard_mode: int = 0
    first_session_at: datetime | None = None
    updated_at: datetime


class UserProfile(BaseModel):
    """The co-owned record group for one user."""

    user: User
    balance: UserBalance
    stats: UserStats


class UserPreferences(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    focus_duration_minutes: int
    focus_mode: FocusMode
    updated_at: datetime


class SessionOutcome(BaseModel):
    """Result of one focus attempt, produced by the session timer."""

    duration_minutes: int = Field(ge=0)
    mode: str
    status: Literal["completed", "failed"]
    started_at: datetime
    ended_at: datetime | None = None
    planned_duration_minutes: int | None = None


class SessionRecordResult(BaseModel):
    reward_minutes: int
    balance: UserBalance
