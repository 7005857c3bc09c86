"""
Wallet API Endpoints.

Read-only views of the authenticated driver's own account.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.db.session import get_db
from tollway.app.core.config import settings
from tollway.app.core.exceptions import ResourceNotFoundError
from tollway.app.core.guards import require_role
from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.models.account import Account
from tollway.app.models.enums import UserRole
from tollway.app.repositories.accounts import AccountRepository
from tollway.app.repositories.transactions import TransactionRepository
from tollway.app.schemas.wallet import (
    BalanceResponse,
    DailyTotals,
    SummaryResponse,
    TransactionListResponse,
    TransactionResponse,
)

router = APIRouter(prefix="/wallet", tags=["Driver - Wallet"])


async def _own_account(db: AsyncSession, current_user: dict) -> Account:
    account = await AccountRepository.get_by_user(db, current_user["user_id"])
    if account is None:
        raise ResourceNotFoundError("Account")
    return account


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    account = await _own_account(db, current_user)
    balance = await LedgerService.balance_of(db, account.id)
    return BalanceResponse(
        account_id=account.id,
        balance=balance,
        is_governmental=account.is_governmental,
        low_balance=balance < settings.low_balance_threshold,
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Ledger entries, newest first."""
    account = await _own_account(db, current_user)
    transactions = await LedgerService.history(db, account.id, limit=limit, offset=offset)
    total = await TransactionRepository.count_for_account(db, account.id)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    days: int = Query(14, ge=1, le=90),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Per-day spending and top-ups."""
    account = await _own_account(db, current_user)
    series = await LedgerService.daily_summary(db, account.id, days=days)
    return SummaryResponse(
        account_id=account.id,
        days=days,
        series=[DailyTotals(**day) for day in series],
    )
