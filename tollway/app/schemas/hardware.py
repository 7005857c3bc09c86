"""
Hardware gateway schemas (gate controller payloads).
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any

from tollway.app.models.enums import GateStatus, SubsystemStatus


class ScanReport(BaseModel):
    """
    Example:
        {"gate_identifier": "GATE-001", "rfid_tag": "ABC123XYZ",
         "weight_kg": 4500.50, "timestamp": "2025-11-25T10:30:00Z"}
    """
    gate_identifier: str = Field(..., min_length=1, max_length=100)
    rfid_tag: Optional[str] = None
    weight_kg: Optional[Decimal] = None
    timestamp: Optional[datetime] = None


class HardwareStatusReport(BaseModel):
    gate_identifier: str = Field(..., min_length=1, max_length=100)
    gate_status: GateStatus
    rfid_scanner_status: SubsystemStatus
    weight_sensor_status: SubsystemStatus
    hardware_info: Optional[Dict[str, Any]] = None


class Heartbeat(BaseModel):
    gate_identifier: str = Field(..., min_length=1, max_length=100)


class GateSummary(BaseModel):
    id: int
    name: str
    is_operational: bool
    base_toll_rate: Optional[Decimal] = None
    overweight_fine_rate: Optional[Decimal] = None
    weight_limit_kg: Optional[Decimal] = None


class HardwareAck(BaseModel):
    success: bool = True
    message: str
    gate_action: str
    server_time: datetime
    toll_gate: GateSummary
