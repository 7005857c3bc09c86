"""
Ledger Service (Domain Logic).

Append-only wallet ledger. Every balance change is a Transaction row whose
balance_after matches the account balance it produced.

Methods flush but never commit: the caller owns the transaction boundary,
so a debit and the passage it pays for persist together or not at all.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.core.exceptions import (
    DuplicateReferenceError,
    InsufficientFundsError,
    InternalPersistenceError,
    InvalidAmountError,
    ResourceNotFoundError,
)
from tollway.app.core.money import ZERO, to_money, Number
from tollway.app.models.account import Account
from tollway.app.models.enums import TransactionType
from tollway.app.models.transaction import Transaction
from tollway.app.repositories.accounts import AccountRepository
from tollway.app.repositories.transactions import TransactionRepository

logger = logging.getLogger("tollway.ledger")


@dataclass
class ConservationReport:
    account_id: int
    balance: Decimal
    ledger_sum: Decimal
    broken_entry_ids: List[int] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return self.balance == self.ledger_sum and not self.broken_entry_ids


def _json_safe(metadata: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if metadata is None:
        return None
    return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in metadata.items()}


class LedgerService:

    @staticmethod
    async def credit(
        db: AsyncSession,
        account_id: int,
        amount: Number,
        description: str,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Transaction:
        """
        Add money to an account.

        Raises:
            InvalidAmountError: amount is not positive
            DuplicateReferenceError: reference already logged
        """
        amount = LedgerService._positive(amount, "Credit")
        reference = reference or LedgerService.new_reference("TXN")
        await LedgerService._ensure_unused(db, reference)

        account = await LedgerService._lock(db, account_id)
        new_balance = to_money(account.balance) + amount
        account.balance = new_balance

        return await LedgerService._append(
            db, account, TransactionType.CREDIT, amount, new_balance,
            description, reference, metadata
        )

    @staticmethod
    async def debit(
        db: AsyncSession,
        account_id: int,
        amount: Number,
        description: str,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Transaction:
        """
        Take money out of an account.

        The account row is locked before the sufficiency check, so two
        concurrent debits can't both pass against the same stale balance.
        Nothing is written when the check fails.

        Raises:
            InvalidAmountError: amount is not positive
            InsufficientFundsError: balance < amount
            DuplicateReferenceError: reference already logged
        """
        amount = LedgerService._positive(amount, "Debit")
        reference = reference or LedgerService.new_reference("TXN")
        await LedgerService._ensure_unused(db, reference)

        account = await LedgerService._lock(db, account_id)
        balance = to_money(account.balance)
        if balance < amount:
            raise InsufficientFundsError(
                required=amount,
                available=balance,
                data={
                    "required_amount": str(amount),
                    "current_balance": str(balance),
                }
            )

        new_balance = balance - amount
        account.balance = new_balance

        return await LedgerService._append(
            db, account, TransactionType.DEBIT, -amount, new_balance,
            description, reference, metadata
        )

    @staticmethod
    async def balance_of(db: AsyncSession, account_id: int) -> Decimal:
        balance = await AccountRepository.get_balance(db, account_id)
        if balance is None:
            raise ResourceNotFoundError("Account", account_id)
        return to_money(balance)

    @staticmethod
    async def history(
        db: AsyncSession,
        account_id: int,
        limit: int = 20,
        offset: int = 0
    ) -> List[Transaction]:
        return await TransactionRepository.list_for_account(db, account_id, limit=limit, offset=offset)

    @staticmethod
    async def daily_summary(db: AsyncSession, account_id: int, days: int = 14) -> List[Dict[str, Any]]:
        """
        Per-day debit/credit totals for the last `days` days (today included).

        Empty days are present with zeros. Debit totals are reported as
        positive amounts.
        """
        today = datetime.now(timezone.utc).date()
        start_date = today - timedelta(days=days - 1)
        since = datetime(start_date.year, start_date.month, start_date.day, tzinfo=timezone.utc)

        series = {}
        for i in range(days):
            day = (start_date + timedelta(days=i)).isoformat()
            series[day] = {"date": day, "debit_total": ZERO, "credit_total": ZERO, "count": 0}

        for txn in await TransactionRepository.list_since(db, account_id, since):
            day = txn.created_at.date().isoformat()
            bucket = series.setdefault(
                day, {"date": day, "debit_total": ZERO, "credit_total": ZERO, "count": 0}
            )
            if txn.type == TransactionType.DEBIT:
                bucket["debit_total"] += -to_money(txn.amount)
            else:
                bucket["credit_total"] += to_money(txn.amount)
            bucket["count"] += 1

        return list(series.values())

    @staticmethod
    async def verify_conservation(db: AsyncSession, account_id: int) -> ConservationReport:
        """Replay the account's entries and compare against the stored snapshots."""
        balance = await LedgerService.balance_of(db, account_id)

        running = ZERO
        broken = []
        for txn in await TransactionRepository.list_chronological(db, account_id):
            running += to_money(txn.amount)
            if to_money(txn.balance_after) != running:
                broken.append(txn.id)

        return ConservationReport(
            account_id=account_id,
            balance=balance,
            ledger_sum=running,
            broken_entry_ids=broken,
        )

    @staticmethod
    def new_reference(prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex}"

    # Internals

    @staticmethod
    def _positive(amount: Number, kind: str) -> Decimal:
        value = to_money(amount)
        if value <= 0:
            raise InvalidAmountError(f"{kind} amount must be greater than zero")
        return value

    @staticmethod
    async def _ensure_unused(db: AsyncSession, reference: str) -> None:
        existing = await TransactionRepository.get_by_reference(db, reference)
        if existing is not None:
            raise DuplicateReferenceError(reference, transaction_id=existing.id)

    @staticmethod
    async def _lock(db: AsyncSession, account_id: int) -> Account:
        account = await AccountRepository.get_for_update(db, account_id)
        if account is None:
            raise ResourceNotFoundError("Account", account_id)
        return account

    @staticmethod
    async def _append(
        db: AsyncSession,
        account: Account,
        txn_type: TransactionType,
        signed_amount: Decimal,
        balance_after: Decimal,
        description: str,
        reference: str,
        metadata: Optional[Dict[str, Any]]
    ) -> Transaction:
        txn = Transaction(
            account_id=account.id,
            type=txn_type,
            amount=signed_amount,
            balance_after=balance_after,
            description=description,
            reference=reference,
            meta_data=_json_safe(metadata),
        )
        db.add(txn)

        try:
            # Balance update and entry insert reach the database together
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            existing = await TransactionRepository.get_by_reference(db, reference)
            if existing is not None:
                logger.warning("Lost reference race", extra={"reference": reference})
                raise DuplicateReferenceError(reference, transaction_id=existing.id) from exc
            logger.exception("Ledger append failed", extra={"account_id": account.id})
            raise InternalPersistenceError() from exc

        logger.info(
            "Ledger %s", txn_type.value,
            extra={
                "account_id": account.id,
                "amount": str(signed_amount),
                "balance_after": str(balance_after),
                "reference": reference,
            }
        )
        return txn
