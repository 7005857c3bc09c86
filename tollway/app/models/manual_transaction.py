"""
Manual Transaction database model.

Operator record of a staff action at a gate.
"""

from sqlalchemy import Column, Integer, Numeric, String, Text, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.sql import func
from tollway.app.db.session import Base
from tollway.app.models.enums import ManualTransactionType


class ManualTransaction(Base):
    __tablename__ = "manual_transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    toll_gate_id = Column(Integer, ForeignKey("toll_gates.id"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)

    transaction_type = Column(Enum(ManualTransactionType), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)

    # Walk-up driver details (cash payments)
    vehicle_registration = Column(String(50), nullable=True)
    driver_name = Column(String(255), nullable=True)
    driver_contact = Column(String(255), nullable=True)

    reason = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    meta_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ManualTransaction(id={self.id}, type='{self.transaction_type.value}', amount={self.amount})>"
