"""
Toll gate schemas.

Field-level rules for scans live in domain.tolling.validation; these models
only fix the wire types.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any


class VerifyRequest(BaseModel):
    """RFID verification request sent by a gate controller or kiosk."""
    rfid_uid: Optional[str] = None
    toll_gate_id: Optional[int] = None
    weight_kg: Optional[Decimal] = None
    idempotency_key: Optional[str] = Field(None, description="Retry token; may also be sent as Idempotency-Key")


class PassageData(BaseModel):
    passage_id: int
    reference: Optional[str]
    amount_deducted: str
    toll_amount: str
    fine_amount: str
    is_overweight: bool
    is_governmental: bool
    new_balance: Optional[str]
    payment_method: Optional[str]
    timestamp: str
    replayed: bool = False


class VerifyResponse(BaseModel):
    success: bool = True
    message: str
    gate_action: str = "open"
    data: PassageData


class TollGateStatus(BaseModel):
    id: int
    name: str
    location: Optional[str]
    gate_identifier: str
    base_toll_rate: Decimal
    overweight_fine_rate: Decimal
    weight_limit_kg: Decimal
    is_active: bool
    gate_status: str
    rfid_scanner_status: str
    weight_sensor_status: str
    last_heartbeat: Optional[datetime]
    is_operational: bool
    hardware_info: Optional[Dict[str, Any]] = None


class TollGateStatusResponse(BaseModel):
    success: bool = True
    data: TollGateStatus
