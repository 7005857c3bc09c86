"""
Account database model.

Wallet balance of a user. Only the ledger writes to `balance`.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from tollway.app.db.session import Base


class Account(Base):
    """
    Account model.

    One per user. `balance` always equals the sum of the signed amounts of
    the account's ledger transactions.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)

    balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    # Set from the license classification (government fleet drivers)
    is_governmental = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    def __repr__(self):
        return f"<Account(id={self.id}, user_id={self.user_id}, balance={self.balance})>"
