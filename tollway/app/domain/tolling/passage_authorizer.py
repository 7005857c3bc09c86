"""
Passage Authorizer (Domain Logic).

Decides one passage event at a gate:

    validate -> replay check -> gate check -> vehicle resolve
             -> rate evaluate -> exempt | settle -> record passage

Every outcome past the gate lookup is persisted as exactly one TollPassage
row. A wallet debit and its passage are committed in the same database
transaction; a rejected passage never carries a ledger entry.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Dict, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.core.config import settings
from tollway.app.core.exceptions import (
    AppException,
    DuplicateReferenceError,
    GateNotFoundError,
    GateUnavailableError,
    GatewayTimeoutError,
    InsufficientFundsError,
    InternalPersistenceError,
    RfidNotFoundError,
    ScanValidationError,
)
from tollway.app.core.money import ZERO, format_money, to_money, Number
from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.domain.tolling import rate_policy
from tollway.app.domain.tolling.rate_policy import RateQuote
from tollway.app.domain.tolling.validation import ScanRequest, validate_scan
from tollway.app.models.enums import PassageStatus, PaymentMethod
from tollway.app.models.toll_gate import TollGate
from tollway.app.models.toll_passage import TollPassage
from tollway.app.repositories.accounts import AccountRepository
from tollway.app.repositories.toll_gates import TollGateRepository
from tollway.app.repositories.toll_passages import TollPassageRepository
from tollway.app.repositories.transactions import TransactionRepository
from tollway.app.repositories.vehicles import VehicleRepository
from tollway.app.services.receipt_dispatcher import ReceiptDispatcher

logger = logging.getLogger("tollway.passage")

T = TypeVar("T")


@dataclass
class AuthorizationResult:
    """Outcome of one authorize() call. `error` is set for rejections."""
    passage: TollPassage
    quote: Optional[RateQuote] = None
    new_balance: Optional[Decimal] = None
    error: Optional[AppException] = None
    replayed: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and self.passage.was_successful

    @property
    def gate_action(self) -> str:
        return "open" if self.success else "close"

    @property
    def receipt_due(self) -> bool:
        """Fresh wallet or exempt passages, and insufficient balance rejections."""
        if self.replayed:
            return False
        return self.passage.was_successful or self.passage.error_code == "INSUFFICIENT_BALANCE"

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.message
        if self.passage.payment_method == PaymentMethod.GOVERNMENTAL_EXEMPTION:
            return "Governmental vehicle - toll exempted"
        return "Toll payment successful"

    def to_data(self) -> Dict[str, Any]:
        passage = self.passage
        deducted = passage.total_amount if passage.payment_method == PaymentMethod.WALLET else ZERO
        return {
            "passage_id": passage.id,
            "reference": passage.reference,
            "amount_deducted": format_money(deducted),
            "toll_amount": format_money(passage.toll_amount),
            "fine_amount": format_money(passage.fine_amount),
            "is_overweight": bool(passage.is_overweight),
            "is_governmental": passage.payment_method == PaymentMethod.GOVERNMENTAL_EXEMPTION,
            "new_balance": format_money(self.new_balance) if self.new_balance is not None else None,
            "payment_method": passage.payment_method.value if passage.payment_method else None,
            "timestamp": passage.scanned_at.isoformat(),
            "replayed": self.replayed,
        }


def build_scan_request(
    rfid_tag: Optional[str],
    toll_gate_id: Optional[int],
    weight_kg: Optional[Number] = None,
    idempotency_key: Optional[str] = None,
    staff_id: Optional[int] = None,
) -> ScanRequest:
    """Validate raw scan input or raise ScanValidationError."""
    validation = validate_scan(rfid_tag, toll_gate_id, weight_kg, idempotency_key, staff_id)
    if not validation.valid:
        raise ScanValidationError([e.as_dict() for e in validation.errors])
    return validation.normalized


def new_passage_reference() -> str:
    return f"TOLL-{uuid.uuid4().hex}"


async def within_deadline(operation: Awaitable[T], timeout: Optional[float] = None) -> T:
    """
    Await a passage operation under the gate deadline.

    On expiry the operation is cancelled; its session rolls back when the
    request scope closes, so nothing half-applied is left behind.
    """
    try:
        return await asyncio.wait_for(operation, timeout or settings.passage_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error("Passage processing exceeded %ss", timeout or settings.passage_timeout_seconds)
        raise GatewayTimeoutError()


async def send_receipt(result: AuthorizationResult) -> None:
    """
    Queue the receipt for a decided passage.

    Runs after within_deadline has returned: the passage is already
    committed, so a slow queue must not turn it into a timeout.
    """
    if result.receipt_due:
        await ReceiptDispatcher.publish(result.passage.id)


class PassageAuthorizer:

    @staticmethod
    async def authorize(db: AsyncSession, request: ScanRequest) -> AuthorizationResult:
        """
        Authorize and settle one scan.

        Returns an AuthorizationResult for every recorded outcome, accepted
        or rejected. Raises only for outcomes that leave no passage behind:
        unknown gate, reference conflicts and persistence failures.

        Commits the session.
        """
        if request.idempotency_key:
            existing = await TollPassageRepository.get_by_reference(db, request.idempotency_key)
            if existing is not None:
                logger.info("Replaying passage", extra={"reference": existing.reference})
                return await PassageAuthorizer.replay(db, existing)

        reference = request.idempotency_key or new_passage_reference()
        scanned_at = datetime.now(timezone.utc)

        # Gate check
        gate = await TollGateRepository.get(db, request.toll_gate_id)
        if gate is None:
            raise GateNotFoundError(request.toll_gate_id)

        if not gate.is_operational():
            error = GateUnavailableError(data=gate.status_snapshot())
            passage = PassageAuthorizer._rejected(request, reference, scanned_at, error)
            return await PassageAuthorizer._record(db, passage, error=error)

        # Vehicle resolve
        vehicle = await VehicleRepository.get_active_by_rfid(db, request.rfid_tag)
        if vehicle is None:
            error = RfidNotFoundError()
            passage = PassageAuthorizer._rejected(request, reference, scanned_at, error)
            return await PassageAuthorizer._record(db, passage, error=error)

        account = vehicle.account

        # Rate the weight that gets stored
        weight_kg = to_money(request.weight_kg) if request.weight_kg is not None else None
        quote = rate_policy.evaluate(
            gate,
            weight_kg,
            vehicle.capacity_class,
            vehicle.vehicle_type,
            account_exempt=bool(account.is_governmental),
        )

        passage = TollPassage(
            toll_gate_id=gate.id,
            account_id=account.id,
            vehicle_id=vehicle.id,
            staff_id=request.staff_id,
            rfid_tag=request.rfid_tag,
            reference=reference,
            toll_amount=quote.toll_amount,
            fine_amount=quote.fine_amount,
            total_amount=quote.total_amount,
            vehicle_weight_kg=weight_kg,
            is_overweight=quote.is_overweight,
            meta_data={"gate_identifier": gate.gate_identifier, "registration_number": vehicle.registration_number},
            scanned_at=scanned_at,
        )

        # Exemption branch
        if quote.is_exempt:
            passage.status = PassageStatus.SUCCESSFUL
            passage.payment_method = PaymentMethod.GOVERNMENTAL_EXEMPTION
            return await PassageAuthorizer._record(
                db, passage, quote=quote, new_balance=to_money(account.balance)
            )

        # Settle branch
        passage.payment_method = PaymentMethod.WALLET
        if quote.total_amount == ZERO:
            passage.status = PassageStatus.SUCCESSFUL
            return await PassageAuthorizer._record(
                db, passage, quote=quote, new_balance=to_money(account.balance)
            )

        try:
            txn = await LedgerService.debit(
                db,
                account.id,
                quote.total_amount,
                PassageAuthorizer._description(gate, quote),
                reference=reference,
                metadata={
                    **quote.breakdown(),
                    "toll_gate_id": gate.id,
                    "vehicle_id": vehicle.id,
                    "registration_number": vehicle.registration_number,
                },
            )
        except InsufficientFundsError as exc:
            error = InsufficientFundsError(
                required=exc.required,
                available=exc.available,
                data={
                    "required_amount": format_money(exc.required),
                    "current_balance": format_money(exc.available),
                    "toll_amount": format_money(quote.toll_amount),
                    "fine_amount": format_money(quote.fine_amount),
                },
            )
            passage.status = PassageStatus.REJECTED
            passage.payment_method = None
            passage.error_code = error.error_code
            passage.rejection_reason = (
                f"Insufficient balance. Required: {format_money(exc.required)}, "
                f"Available: {format_money(exc.available)}"
            )
            passage.meta_data = {**passage.meta_data, **error.data}
            return await PassageAuthorizer._record(db, passage, quote=quote, error=error)
        except DuplicateReferenceError:
            await db.rollback()
            return await PassageAuthorizer._replay_or_conflict(db, reference)

        passage.status = PassageStatus.SUCCESSFUL
        return await PassageAuthorizer._record(
            db, passage, quote=quote, new_balance=to_money(txn.balance_after)
        )

    @staticmethod
    async def replay(db: AsyncSession, passage: TollPassage) -> AuthorizationResult:
        """Rebuild the outcome of an already recorded passage. Writes nothing."""
        if passage.was_successful:
            new_balance = None
            if passage.payment_method == PaymentMethod.WALLET:
                txn = await TransactionRepository.get_by_reference(db, passage.reference)
                if txn is not None:
                    new_balance = to_money(txn.balance_after)
            if new_balance is None and passage.account_id is not None:
                new_balance = await AccountRepository.get_balance(db, passage.account_id)
            return AuthorizationResult(
                passage=passage,
                new_balance=to_money(new_balance) if new_balance is not None else None,
                replayed=True,
            )

        return AuthorizationResult(
            passage=passage,
            error=PassageAuthorizer._error_for(passage),
            replayed=True,
        )

    # Internals

    @staticmethod
    def _description(gate: TollGate, quote: RateQuote) -> str:
        description = f"Toll payment at {gate.name}"
        if quote.fine_amount > 0:
            description += " with overweight fine"
        return description

    @staticmethod
    def _rejected(
        request: ScanRequest,
        reference: str,
        scanned_at: datetime,
        error: AppException
    ) -> TollPassage:
        return TollPassage(
            toll_gate_id=request.toll_gate_id,
            staff_id=request.staff_id,
            rfid_tag=request.rfid_tag,
            reference=reference,
            status=PassageStatus.REJECTED,
            error_code=error.error_code,
            rejection_reason=error.message,
            toll_amount=ZERO,
            fine_amount=ZERO,
            total_amount=ZERO,
            vehicle_weight_kg=to_money(request.weight_kg) if request.weight_kg is not None else None,
            is_overweight=False,
            meta_data=error.data or None,
            scanned_at=scanned_at,
        )

    @staticmethod
    def _error_for(passage: TollPassage) -> AppException:
        data = passage.meta_data or {}
        if passage.error_code == "GATE_UNAVAILABLE":
            return GateUnavailableError(data=data)
        if passage.error_code == "RFID_NOT_FOUND":
            return RfidNotFoundError()
        if passage.error_code == "INSUFFICIENT_BALANCE":
            return InsufficientFundsError(
                required=data.get("required_amount"),
                available=data.get("current_balance"),
                data={
                    k: data[k]
                    for k in ("required_amount", "current_balance", "toll_amount", "fine_amount")
                    if k in data
                },
            )
        return AppException(
            message=passage.rejection_reason or "Passage rejected",
            error_code=passage.error_code or "PASSAGE_REJECTED",
            status_code=409,
        )

    @staticmethod
    async def _record(
        db: AsyncSession,
        passage: TollPassage,
        quote: Optional[RateQuote] = None,
        new_balance: Optional[Decimal] = None,
        error: Optional[AppException] = None
    ) -> AuthorizationResult:
        """Persist the passage (and any pending ledger work) in one commit."""
        db.add(passage)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            # Another request with the same reference committed first
            existing = await TollPassageRepository.get_by_reference(db, passage.reference)
            if existing is not None:
                return await PassageAuthorizer.replay(db, existing)
            logger.exception("Passage violates a constraint", extra={"reference": passage.reference})
            raise InternalPersistenceError() from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Passage commit failed", extra={"reference": passage.reference})
            raise InternalPersistenceError() from exc

        logger.info(
            "Passage %s", passage.status.value,
            extra={
                "passage_id": passage.id,
                "toll_gate_id": passage.toll_gate_id,
                "reference": passage.reference,
                "total_amount": str(passage.total_amount),
                "error_code": passage.error_code,
            }
        )

        return AuthorizationResult(passage=passage, quote=quote, new_balance=new_balance, error=error)

    @staticmethod
    async def _replay_or_conflict(db: AsyncSession, reference: str) -> AuthorizationResult:
        existing = await TollPassageRepository.get_by_reference(db, reference)
        if existing is None:
            raise DuplicateReferenceError(reference)
        return await PassageAuthorizer.replay(db, existing)
