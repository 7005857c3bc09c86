"""
Admin API Endpoints.

Wallet top-ups, ledger consistency checks and dead letter retries.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.db.session import get_db
from tollway.app.core.guards import require_role
from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.models.dlq import DeadLetterQueue, DLQStatus
from tollway.app.models.enums import UserRole
from tollway.app.schemas.wallet import CreditRequest, CreditResponse, TransactionResponse
from tollway.app.services.audit import AuditAction, log_event
from tollway.app.services.receipt_dispatcher import ReceiptDispatcher, TASK_NAME

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/accounts/{account_id}/credit", response_model=CreditResponse)
async def credit_account(
    payload: CreditRequest,
    account_id: int = Path(..., gt=0),
    current_user: dict = Depends(require_role([UserRole.ADMIN, UserRole.STAFF])),
    db: AsyncSession = Depends(get_db)
):
    """
    Credit a wallet, e.g. after a confirmed external payment.

    Reusing a reference answers 409 DUPLICATE_REFERENCE and credits nothing.
    """
    txn = await LedgerService.credit(
        db,
        account_id,
        payload.amount,
        payload.description,
        reference=payload.reference,
        metadata={"credited_by": current_user["user_id"]},
    )
    await log_event(
        db,
        action=AuditAction.WALLET_CREDITED,
        actor_id=current_user["user_id"],
        actor_name=current_user.get("sub"),
        target_type="account",
        target_id=account_id,
        metadata={"amount": str(txn.amount), "reference": txn.reference},
    )
    await db.commit()
    await db.refresh(txn)

    return CreditResponse(
        message="Account credited successfully",
        transaction=TransactionResponse.model_validate(txn),
    )


@router.get("/accounts/{account_id}/ledger-check")
async def check_ledger(
    account_id: int = Path(..., gt=0),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Recompute the account's ledger and compare it with the stored balance."""
    report = await LedgerService.verify_conservation(db, account_id)
    return {
        "account_id": report.account_id,
        "consistent": report.consistent,
        "balance": str(report.balance),
        "ledger_sum": str(report.ledger_sum),
        "broken_entry_ids": report.broken_entry_ids,
    }


@router.post("/ops/dlq/{dlq_id}/retry")
async def retry_dlq_item(
    dlq_id: int = Path(..., description="DLQ Item ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Re-run a dead-lettered receipt delivery."""
    result = await db.execute(select(DeadLetterQueue).where(DeadLetterQueue.id == dlq_id))
    item = result.scalar_one_or_none()

    if not item:
        raise HTTPException(status_code=404, detail="DLQ item not found")
    if item.task_name != TASK_NAME:
        raise HTTPException(status_code=400, detail=f"No handler for task {item.task_name}")

    message = (item.payload or {}).get("message")
    delivered = await ReceiptDispatcher.process(db, message)

    # process() committed or rolled back; reload before updating
    result = await db.execute(select(DeadLetterQueue).where(DeadLetterQueue.id == dlq_id))
    item = result.scalar_one()
    item.status = DLQStatus.PROCESSED if delivered else DLQStatus.ARCHIVED
    item.retry_count += 1
    item.last_retry_at = datetime.now(timezone.utc)

    await log_event(
        db,
        action=AuditAction.DLQ_RETRIED,
        actor_id=current_user["user_id"],
        target_type="dead_letter_queue",
        target_id=dlq_id,
        metadata={"delivered": delivered},
    )
    await db.commit()
    return {"message": f"Task {item.task_name} retried", "delivered": delivered}
