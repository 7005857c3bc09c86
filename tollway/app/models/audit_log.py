"""
Audit Log Database Model.

Tracks operator actions and hardware state changes at the gates.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from tollway.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - GATE_STATUS_CHANGED (hardware status reports)
    - CASH_PAYMENT_RECORDED / MANUAL_OVERRIDE_APPLIED / FINE_APPLIED
    - WALLET_CREDITED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for device/system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_name = Column(String(255), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # What the action touched, e.g. ("toll_gate", 3)
    target_type = Column(String(50), nullable=True)
    target_id = Column(Integer, index=True, nullable=True)

    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_name}, target={self.target_type}:{self.target_id})>"
