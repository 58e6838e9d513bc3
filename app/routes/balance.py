"""
balance.py
----------
Balance endpoints for the authenticated user.

    GET   /api/balance  - available minutes, streak and today's activity
    PATCH /api/balance  - overwrite available minutes after client-side spending
"""

from fastapi import APIRouter, Depends

from app.auth.verify import auth_dependency
from app.dependencies import get_ledger
from app.models.api.user_request import SetBalanceRequest
from app.models.domain.user_domain import UserBalance
from app.services.ledger_service import BalanceLedger
from app.utils.responses import success

router = APIRouter(prefix="/api/balance", tags=["Balance"])


def _balance_body(balance: UserBalance) -> dict:
    return {
        "availableMinutes": balance.available_minutes,
        "currentStreakDays": balance.current_streak_days,
        "lastSessionDate": balance.last_session_date,
        "updatedAt": balance.updated_at,
    }


@router.get("")
async def get_balance(
    external_id: str = Depends(auth_dependency),
    ledger: BalanceLedger = Depends(get_ledger),
):
    snapshot = await ledger.get_balance_snapshot(external_id)
    return success(
        {
            "availableMinutes": snapshot.available_minutes,
            "currentStreakDays": snapshot.current_streak_days,
            "lastSessionDate": snapshot.last_session_date,
            "updatedAt": snapshot.updated_at,
            "today": {
                "earnedMinutes": snapshot.today.earned_minutes,
                "spentMinutes": snapshot.today.spent_minutes,
                "sessionsCompleted": snapshot.today.sessions_completed,
                "sessionsFailed": snapshot.today.sessions_failed,
            },
        }
    )


@router.patch("")
async def update_balance(
    body: SetBalanceRequest,
    external_id: str = Depends(auth_dependency),
    ledger: BalanceLedger = Depends(get_ledger),
):
    balance = await ledger.set_available(external_id, body.available_minutes)
    return success(_balance_body(balance))
