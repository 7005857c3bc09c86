"""
Transaction (ledger entry) database model.

Immutable wallet movements.
"""

from sqlalchemy import Column, Integer, Numeric, String, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.sql import func
from tollway.app.db.session import Base
from tollway.app.models.enums import TransactionType


class Transaction(Base):
    """
    Ledger entry.

    `amount` is signed (debits negative) and `balance_after` snapshots the
    account balance right after this entry. Ordered by id, each entry's
    balance_after equals the previous one plus its amount.
    NO updates or deletions allowed; corrections are new entries.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    type = Column(Enum(TransactionType), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)
    description = Column(String(255), nullable=False)

    # Idempotency key (toll scan reference, top-up payment id, ...)
    reference = Column(String(255), nullable=False, unique=True, index=True)
    meta_data = Column(JSON, nullable=True)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_transactions_account_created", "account_id", "created_at"),
    )

    def __repr__(self):
        return f"<Transaction(id={self.id}, type='{self.type.value}', amount={self.amount}, ref='{self.reference}')>"
