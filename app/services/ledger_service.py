"""
Balance ledger service.

Validates ledger mutations before any storage call and maps an unknown user to
NotFoundError. Atomicity of credit() is delegated to the repository.

Service layer returns domain models only - API layer handles HTTP concerns.
"""

from datetime import date

from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import (
    BalanceSnapshot,
    SessionOutcome,
    SessionRecordResult,
    UserBalance,
)
from app.repositories.base import BalanceRepository
from app.services.errors import NotFoundError, ValidationError
from app.services.reward_calculator import compute_reward, get_multiplier

logger = get_logger(__name__)


def require_non_negative_int(value: object, field: str) -> int:
    """Reject bools, floats (3.5 and 3.0 alike) and negatives."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be a non-negative integer")
    return value


class BalanceLedger:
    """Per-user available minutes and streak metadata."""

    def __init__(self, repository: BalanceRepository):
        self.repository = repository

    async def credit(
        self, external_id: str, minutes: int, session_date: date | None = None
    ) -> UserBalance:
        minutes = require_non_negative_int(minutes, "minutes")

        balance = await self.repository.credit(external_id, minutes, session_date)
        if balance is None:
            logger.warning("Credit for unknown user", external_id=external_id)
            raise NotFoundError("Balance not found", external_id=external_id)

        logger.info(
            "Balance credited",
            external_id=external_id,
            minutes=minutes,
            available_minutes=balance.available_minutes,
        )
        return balance

    async def set_available(self, external_id: str, minutes: int) -> UserBalance:
        """
        Overwrite available minutes with a client-reported value.

        Last writer wins against concurrent credit() calls; no version
        check is made.
        """
        minutes = require_non_negative_int(minutes, "availableMinutes")

        balance = await self.repository.set_available(external_id, minutes)
        if balance is None:
            raise NotFoundError("Balance not found", external_id=external_id)

        logger.info("Available minutes set", external_id=external_id, available_minutes=minutes)
        return balance

    async def get_balance_snapshot(self, external_id: str) -> BalanceSnapshot:
        snapshot = await self.repository.get_snapshot(external_id)
        if snapshot is None:
            raise NotFoundError("Balance not found", external_id=external_id)
        return snapshot

    async def record_session_outcome(
        self, external_id: str, outcome: SessionOutcome
    ) -> SessionRecordResult:
        """Apply a finished session: failed sessions earn nothing."""
        multiplier = get_multiplier(outcome.mode)
        if outcome.status == "completed":
            reward = compute_reward(outcome.duration_minutes, outcome.mode)
        else:
            reward = 0

        balance = await self.repository.record_session(external_id, outcome, multiplier, reward)
        if balance is None:
            raise NotFoundError("User not found", external_id=external_id)

        return SessionRecordResult(reward_minutes=reward, balance=balance)
