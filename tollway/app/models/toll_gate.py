"""
Toll Gate database model.

Gate configuration (rates, weight limit) plus the hardware status reported
by the field device.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Enum, JSON
from sqlalchemy.sql import func
from tollway.app.db.session import Base
from tollway.app.models.enums import GateStatus, SubsystemStatus

# Gate states in which the barrier cannot process traffic
UNAVAILABLE_GATE_STATUSES = frozenset({GateStatus.OFFLINE, GateStatus.MALFUNCTION})


class TollGate(Base):
    """
    Toll Gate model.

    `gate_status`, `rfid_scanner_status` and `weight_sensor_status` are written
    by hardware status reports and read by the passage authorizer.
    """
    __tablename__ = "toll_gates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    gate_identifier = Column(String(100), unique=True, nullable=False, index=True)

    # Rates
    base_toll_rate = Column(Numeric(12, 2), nullable=False, default=Decimal("50.00"))
    overweight_fine_rate = Column(Numeric(12, 2), nullable=False, default=Decimal("200.00"))
    weight_limit_kg = Column(Numeric(12, 2), nullable=False, default=Decimal("5000.00"))

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    gate_status = Column(Enum(GateStatus), default=GateStatus.OPERATIONAL, nullable=False)
    rfid_scanner_status = Column(Enum(SubsystemStatus), default=SubsystemStatus.OPERATIONAL, nullable=False)
    weight_sensor_status = Column(Enum(SubsystemStatus), default=SubsystemStatus.OPERATIONAL, nullable=False)
    last_heartbeat = Column(DateTime(timezone=True), nullable=True)
    hardware_info = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def is_operational(self) -> bool:
        """
        A gate processes passages only when it is active, the barrier is not
        offline or broken, and the RFID scanner works. A weight sensor fault
        does not block traffic; scans without a weight are simply not fined.
        """
        return (
            bool(self.is_active)
            and self.gate_status not in UNAVAILABLE_GATE_STATUSES
            and self.rfid_scanner_status == SubsystemStatus.OPERATIONAL
        )

    def status_snapshot(self) -> dict:
        return {
            "gate_status": self.gate_status.value,
            "rfid_scanner_status": self.rfid_scanner_status.value,
            "weight_sensor_status": self.weight_sensor_status.value,
            "is_active": bool(self.is_active),
        }

    def __repr__(self):
        return f"<TollGate(id={self.id}, identifier='{self.gate_identifier}', status='{self.gate_status}')>"
