"""
Toll Passage database model.

One row per processed scan (accepted or rejected), plus staff-processed
cash payments and overrides.
"""

from sqlalchemy import Column, Integer, Numeric, String, Text, Boolean, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.sql import func
from tollway.app.db.session import Base
from tollway.app.models.enums import PassageStatus, PaymentMethod


class TollPassage(Base):
    """
    Toll Passage model.

    Written once, never updated. `reference` is the scan idempotency token;
    a wallet passage shares it with its ledger Transaction.
    """
    __tablename__ = "toll_passages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    toll_gate_id = Column(Integer, ForeignKey("toll_gates.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True, index=True)
    staff_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    rfid_tag = Column(String(255), nullable=True)
    reference = Column(String(255), nullable=True, unique=True, index=True)

    # Outcome
    status = Column(Enum(PassageStatus), nullable=False, index=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    error_code = Column(String(50), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    override_reason = Column(Text, nullable=True)

    # Financials
    toll_amount = Column(Numeric(12, 2), nullable=False, default=0)
    fine_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Weighing
    vehicle_weight_kg = Column(Numeric(12, 2), nullable=True)
    is_overweight = Column(Boolean, default=False, nullable=False)

    meta_data = Column(JSON, nullable=True)

    scanned_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_toll_passages_gate_created", "toll_gate_id", "created_at"),
        Index("ix_toll_passages_account_created", "account_id", "created_at"),
    )

    @property
    def was_successful(self) -> bool:
        return self.status == PassageStatus.SUCCESSFUL

    def __repr__(self):
        return f"<TollPassage(id={self.id}, gate={self.toll_gate_id}, status='{self.status.value}', total={self.total_amount})>"
