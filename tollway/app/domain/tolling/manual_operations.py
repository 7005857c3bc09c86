"""
Manual Operations (Domain Logic).

Staff actions at a gate: cash payment, manual override and manual fine.
Each call records a ManualTransaction and/or a TollPassage, writes an audit
entry and commits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.core.exceptions import GateNotFoundError, InsufficientFundsError, InvalidAmountError
from tollway.app.core.money import ZERO, format_money, to_money, Number
from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.domain.tolling import rate_policy
from tollway.app.models.enums import ManualTransactionType, PassageStatus, PaymentMethod
from tollway.app.models.manual_transaction import ManualTransaction
from tollway.app.models.toll_gate import TollGate
from tollway.app.models.toll_passage import TollPassage
from tollway.app.models.transaction import Transaction
from tollway.app.repositories.accounts import AccountRepository
from tollway.app.repositories.toll_gates import TollGateRepository
from tollway.app.repositories.toll_passages import TollPassageRepository
from tollway.app.repositories.vehicles import VehicleRepository, normalize_rfid
from tollway.app.services.audit import AuditAction, log_event

logger = logging.getLogger("tollway.staff")


@dataclass
class ManualOperationResult:
    manual_transaction: Optional[ManualTransaction] = None
    passage: Optional[TollPassage] = None
    ledger_transaction: Optional[Transaction] = None
    expected_amount: Optional[Decimal] = None

    @property
    def gate_action(self) -> str:
        return "open" if self.passage is not None else "close"


async def _gate(db: AsyncSession, toll_gate_id: int) -> TollGate:
    gate = await TollGateRepository.get(db, toll_gate_id)
    if gate is None:
        raise GateNotFoundError(toll_gate_id)
    return gate


async def cash_payment(
    db: AsyncSession,
    staff_id: int,
    toll_gate_id: int,
    amount: Number,
    weight_kg: Optional[Number] = None,
    vehicle_registration: Optional[str] = None,
    driver_name: Optional[str] = None,
    driver_contact: Optional[str] = None,
    notes: Optional[str] = None
) -> ManualOperationResult:
    """
    Record cash collected at the booth. No wallet is touched.

    The amount the rate policy would have charged is returned alongside, so
    the operator can see a shortfall.
    """
    gate = await _gate(db, toll_gate_id)
    amount = to_money(amount)
    if amount < 0:
        raise InvalidAmountError("Cash amount cannot be negative")

    overweight = rate_policy.is_overweight(weight_kg, gate.weight_limit_kg)
    toll = to_money(gate.base_toll_rate)
    fine = to_money(gate.overweight_fine_rate) if overweight else ZERO

    registration = vehicle_registration.strip().upper() if vehicle_registration else None
    vehicle = await VehicleRepository.get_by_registration(db, registration) if registration else None

    manual = ManualTransaction(
        toll_gate_id=gate.id,
        staff_id=staff_id,
        account_id=vehicle.account_id if vehicle else None,
        transaction_type=ManualTransactionType.CASH_PAYMENT,
        amount=amount,
        vehicle_registration=registration,
        driver_name=driver_name,
        driver_contact=driver_contact,
        reason="Cash payment for unregistered vehicle or RFID issue",
        notes=notes,
    )
    db.add(manual)
    await db.flush()

    passage = TollPassage(
        toll_gate_id=gate.id,
        account_id=vehicle.account_id if vehicle else None,
        vehicle_id=vehicle.id if vehicle else None,
        staff_id=staff_id,
        reference=LedgerService.new_reference("CASH"),
        status=PassageStatus.SUCCESSFUL,
        payment_method=PaymentMethod.CASH_PAYMENT,
        toll_amount=toll,
        fine_amount=fine,
        total_amount=amount,
        vehicle_weight_kg=to_money(weight_kg) if weight_kg is not None else None,
        is_overweight=overweight,
        meta_data={
            "vehicle_registration": registration,
            "driver_name": driver_name,
            "manual_transaction_id": manual.id,
        },
        scanned_at=datetime.now(timezone.utc),
    )
    await TollPassageRepository.add(db, passage)

    await log_event(
        db,
        action=AuditAction.CASH_PAYMENT_RECORDED,
        actor_id=staff_id,
        target_type="toll_passage",
        target_id=passage.id,
        metadata={"amount": format_money(amount), "expected_amount": format_money(toll + fine)},
    )
    await db.commit()

    logger.info(
        "Cash payment recorded",
        extra={"toll_gate_id": gate.id, "passage_id": passage.id, "amount": str(amount)}
    )
    return ManualOperationResult(manual_transaction=manual, passage=passage, expected_amount=toll + fine)


async def manual_override(
    db: AsyncSession,
    staff_id: int,
    toll_gate_id: int,
    reason: str,
    rfid_tag: Optional[str] = None,
    weight_kg: Optional[Number] = None
) -> ManualOperationResult:
    """Let a vehicle through free of charge, recording who did it and why."""
    gate = await _gate(db, toll_gate_id)

    tag = normalize_rfid(rfid_tag) if rfid_tag and rfid_tag.strip() else None
    vehicle = await VehicleRepository.get_active_by_rfid(db, tag) if tag else None

    passage = TollPassage(
        toll_gate_id=gate.id,
        account_id=vehicle.account_id if vehicle else None,
        vehicle_id=vehicle.id if vehicle else None,
        staff_id=staff_id,
        rfid_tag=tag,
        reference=LedgerService.new_reference("OVR"),
        status=PassageStatus.SUCCESSFUL,
        payment_method=PaymentMethod.MANUAL_OVERRIDE,
        toll_amount=ZERO,
        fine_amount=ZERO,
        total_amount=ZERO,
        vehicle_weight_kg=to_money(weight_kg) if weight_kg is not None else None,
        is_overweight=False,
        override_reason=reason,
        scanned_at=datetime.now(timezone.utc),
    )
    await TollPassageRepository.add(db, passage)

    manual = ManualTransaction(
        toll_gate_id=gate.id,
        staff_id=staff_id,
        account_id=passage.account_id,
        transaction_type=ManualTransactionType.MANUAL_OVERRIDE,
        amount=ZERO,
        reason=reason,
        meta_data={"passage_id": passage.id, "rfid_tag": tag},
    )
    db.add(manual)

    await log_event(
        db,
        action=AuditAction.MANUAL_OVERRIDE_APPLIED,
        actor_id=staff_id,
        target_type="toll_passage",
        target_id=passage.id,
        metadata={"reason": reason, "rfid_tag": tag},
    )
    await db.commit()

    logger.info("Manual override applied", extra={"toll_gate_id": gate.id, "passage_id": passage.id})
    return ManualOperationResult(manual_transaction=manual, passage=passage)


async def add_fine(
    db: AsyncSession,
    staff_id: int,
    toll_gate_id: int,
    amount: Number,
    reason: str,
    account_id: Optional[int] = None,
    notes: Optional[str] = None
) -> ManualOperationResult:
    """
    Record a fine. With an account, the fine is debited from its wallet;
    InsufficientFundsError propagates and nothing is recorded.
    """
    gate = await _gate(db, toll_gate_id)
    amount = to_money(amount)
    if amount <= 0:
        raise InvalidAmountError("Fine amount must be greater than zero")

    manual = ManualTransaction(
        toll_gate_id=gate.id,
        staff_id=staff_id,
        account_id=account_id,
        transaction_type=ManualTransactionType.FINE_ADJUSTMENT,
        amount=amount,
        reason=reason,
        notes=notes,
    )
    db.add(manual)
    await db.flush()

    txn = None
    if account_id is not None:
        try:
            txn = await LedgerService.debit(
                db,
                account_id,
                amount,
                f"Manual fine: {reason}",
                reference=LedgerService.new_reference("FINE"),
                metadata={"manual_transaction_id": manual.id, "staff_id": staff_id, "toll_gate_id": gate.id},
            )
        except InsufficientFundsError:
            await db.rollback()
            raise

    await log_event(
        db,
        action=AuditAction.FINE_APPLIED,
        actor_id=staff_id,
        target_type="account" if account_id is not None else "toll_gate",
        target_id=account_id if account_id is not None else gate.id,
        metadata={"amount": format_money(amount), "reason": reason},
    )
    await db.commit()

    logger.info(
        "Fine recorded",
        extra={"toll_gate_id": gate.id, "account_id": account_id, "amount": str(amount)}
    )
    return ManualOperationResult(manual_transaction=manual, ledger_transaction=txn)


async def lookup_driver(
    db: AsyncSession,
    rfid_tag: Optional[str] = None,
    registration_number: Optional[str] = None,
    passages_limit: int = 10
) -> Optional[Dict[str, Any]]:
    """Find a vehicle by tag or plate, with its wallet and recent passages."""
    vehicle = None
    if rfid_tag:
        vehicle = await VehicleRepository.get_active_by_rfid(db, rfid_tag)
    elif registration_number:
        vehicle = await VehicleRepository.get_by_registration(db, registration_number)

    if vehicle is None:
        return None

    balance = await AccountRepository.get_balance(db, vehicle.account_id)
    passages: List[TollPassage] = await TollPassageRepository.list_for_account(
        db, vehicle.account_id, limit=passages_limit
    )
    return {
        "vehicle": vehicle,
        "account_id": vehicle.account_id,
        "balance": to_money(balance),
        "is_governmental": bool(vehicle.account.is_governmental),
        "recent_passages": passages,
    }
