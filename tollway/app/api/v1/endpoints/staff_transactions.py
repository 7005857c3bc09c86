"""
Staff Manual Transaction API Endpoints.

Booth operations: cash payments, overrides, fines and driver lookup.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.db.session import get_db
from tollway.app.core.exceptions import ResourceNotFoundError
from tollway.app.core.guards import require_role
from tollway.app.domain.tolling import manual_operations
from tollway.app.models.enums import UserRole
from tollway.app.schemas.staff import (
    CashPaymentRequest,
    DriverLookupResponse,
    FineRequest,
    ManualOperationResponse,
    ManualOverrideRequest,
    ManualTransactionResponse,
    PassageResponse,
    VehicleSummary,
)

router = APIRouter(prefix="/staff", tags=["Staff - Manual Transactions"])

staff_only = require_role([UserRole.STAFF, UserRole.ADMIN])


@router.post("/cash-payment", response_model=ManualOperationResponse)
async def process_cash_payment(
    payload: CashPaymentRequest,
    current_user: dict = Depends(staff_only),
    db: AsyncSession = Depends(get_db)
):
    result = await manual_operations.cash_payment(
        db,
        staff_id=current_user["user_id"],
        toll_gate_id=payload.toll_gate_id,
        amount=payload.amount,
        weight_kg=payload.vehicle_weight_kg,
        vehicle_registration=payload.vehicle_registration,
        driver_name=payload.driver_name,
        driver_contact=payload.driver_contact,
        notes=payload.notes,
    )
    return ManualOperationResponse(
        message="Cash payment processed successfully",
        gate_action=result.gate_action,
        manual_transaction=ManualTransactionResponse.model_validate(result.manual_transaction),
        passage=PassageResponse.model_validate(result.passage),
        expected_amount=result.expected_amount,
    )


@router.post("/manual-override", response_model=ManualOperationResponse)
async def process_manual_override(
    payload: ManualOverrideRequest,
    current_user: dict = Depends(staff_only),
    db: AsyncSession = Depends(get_db)
):
    result = await manual_operations.manual_override(
        db,
        staff_id=current_user["user_id"],
        toll_gate_id=payload.toll_gate_id,
        reason=payload.reason,
        rfid_tag=payload.rfid_tag,
        weight_kg=payload.vehicle_weight_kg,
    )
    return ManualOperationResponse(
        message="Manual override applied",
        gate_action=result.gate_action,
        manual_transaction=ManualTransactionResponse.model_validate(result.manual_transaction),
        passage=PassageResponse.model_validate(result.passage),
    )


@router.post("/fines", response_model=ManualOperationResponse)
async def add_fine(
    payload: FineRequest,
    current_user: dict = Depends(staff_only),
    db: AsyncSession = Depends(get_db)
):
    """Record a fine; with `account_id` the wallet is debited (402 if it can't cover it)."""
    result = await manual_operations.add_fine(
        db,
        staff_id=current_user["user_id"],
        toll_gate_id=payload.toll_gate_id,
        amount=payload.amount,
        reason=payload.reason,
        account_id=payload.account_id,
        notes=payload.notes,
    )
    txn = result.ledger_transaction
    return ManualOperationResponse(
        message="Fine applied successfully" if txn else "Fine recorded successfully",
        gate_action="close",
        manual_transaction=ManualTransactionResponse.model_validate(result.manual_transaction),
        new_balance=txn.balance_after if txn else None,
    )


@router.get("/driver-lookup", response_model=DriverLookupResponse)
async def driver_lookup(
    rfid_tag: Optional[str] = Query(None, max_length=255),
    registration_number: Optional[str] = Query(None, max_length=50),
    current_user: dict = Depends(staff_only),
    db: AsyncSession = Depends(get_db)
):
    found = await manual_operations.lookup_driver(db, rfid_tag=rfid_tag, registration_number=registration_number)
    if found is None:
        raise ResourceNotFoundError("Vehicle")
    return DriverLookupResponse(
        vehicle=VehicleSummary.model_validate(found["vehicle"]),
        account_id=found["account_id"],
        balance=found["balance"],
        is_governmental=found["is_governmental"],
        recent_passages=[PassageResponse.model_validate(p) for p in found["recent_passages"]],
    )
