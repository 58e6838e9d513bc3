"""
Repository interfaces for the user record group.

Services depend on these abstractions; app.repositories.*_repository
provide the PostgreSQL implementations and the test suite provides
in-memory ones. Every operation is keyed by the Clerk user id (the
external identity).
"""

from abc import ABC, abstractmethod
from datetime import date

from app.db.update_builder import ABSENT
from app.models.domain.user_domain import (
    BalanceSnapshot,
    SessionOutcome,
    User,
    UserBalance,
    UserPreferences,
    UserProfile,
)


class IdentityRepository(ABC):
    @abstractmethod
    async def create(self, external_id: str, email: str | None, display_name: str | None) -> User:
        """
        Create user, balance, stats and preferences rows as one unit.

        Raises ConflictError if the external id already exists.
        """

    @abstractmethod
    async def find_by_external_id(self, external_id: str) -> User | None: ...

    @abstractmethod
    async def update(self, external_id: str, *, email=ABSENT, display_name=ABSENT) -> User | None:
        """Partial update; ABSENT fields keep their stored value."""

    @abstractmethod
    async def delete(self, external_id: str) -> bool:
        """Remove the whole record group. Returns whether a user existed."""

    @abstractmethod
    async def get_profile(self, external_id: str) -> UserProfile | None:
        """
        Identity with its balance and stats.

        Raises IntegrityViolationError if the user exists without them.
        """


class BalanceRepository(ABC):
    @abstractmethod
    async def credit(
        self, external_id: str, minutes: int, session_date: date | None = None
    ) -> UserBalance | None:
        """
        Atomically add minutes (and advance the streak when session_date is given).

        Returns None for an unknown user. Raises IntegrityViolationError if
        the user exists without a balance.
        """

    @abstractmethod
    async def set_available(self, external_id: str, minutes: int) -> UserBalance | None:
        """
        Overwrite available minutes. Last writer wins.

        Raises IntegrityViolationError if the user exists without a balance.
        """

    @abstractmethod
    async def get_snapshot(self, external_id: str) -> BalanceSnapshot | None:
        """
        Balance with today's aggregates from one consistent read.

        Raises IntegrityViolationError if the user exists without a balance.
        """

    @abstractmethod
    async def record_session(
        self, external_id: str, outcome: SessionOutcome, multiplier: int, reward_minutes: int
    ) -> UserBalance | None:
        """Store a session outcome, credit its reward and bump stats in one transaction."""


class PreferencesRepository(ABC):
    @abstractmethod
    async def get(self, external_id: str) -> UserPreferences | None: ...

    @abstractmethod
    async def update(
        self, external_id: str, *, focus_duration_minutes=ABSENT, focus_mode=ABSENT
    ) -> UserPreferences | None: ...
