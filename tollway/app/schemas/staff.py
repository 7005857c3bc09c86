"""
Staff manual transaction schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any

from tollway.app.models.enums import ManualTransactionType, PassageStatus, PaymentMethod, VehicleType


class CashPaymentRequest(BaseModel):
    toll_gate_id: int
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    vehicle_weight_kg: Optional[Decimal] = Field(None, ge=0, le=50000)
    vehicle_registration: Optional[str] = Field(None, max_length=50)
    driver_name: Optional[str] = Field(None, max_length=255)
    driver_contact: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class ManualOverrideRequest(BaseModel):
    toll_gate_id: int
    reason: str = Field(..., min_length=1, max_length=500)
    rfid_tag: Optional[str] = Field(None, max_length=255)
    vehicle_weight_kg: Optional[Decimal] = Field(None, ge=0, le=50000)


class FineRequest(BaseModel):
    toll_gate_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(..., min_length=1, max_length=500)
    account_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=1000)


class PassageResponse(BaseModel):
    """Schema for displaying a toll passage."""
    id: int
    toll_gate_id: int
    account_id: Optional[int]
    vehicle_id: Optional[int]
    staff_id: Optional[int]
    rfid_tag: Optional[str]
    reference: Optional[str]
    status: PassageStatus
    payment_method: Optional[PaymentMethod]
    error_code: Optional[str]
    rejection_reason: Optional[str]
    override_reason: Optional[str]
    toll_amount: Decimal
    fine_amount: Decimal
    total_amount: Decimal
    vehicle_weight_kg: Optional[Decimal]
    is_overweight: bool
    scanned_at: datetime

    class Config:
        from_attributes = True


class ManualTransactionResponse(BaseModel):
    id: int
    toll_gate_id: int
    staff_id: int
    account_id: Optional[int]
    transaction_type: ManualTransactionType
    amount: Decimal
    reason: str

    class Config:
        from_attributes = True


class ManualOperationResponse(BaseModel):
    success: bool = True
    message: str
    gate_action: str
    manual_transaction: Optional[ManualTransactionResponse] = None
    passage: Optional[PassageResponse] = None
    expected_amount: Optional[Decimal] = None
    new_balance: Optional[Decimal] = None


class VehicleSummary(BaseModel):
    id: int
    registration_number: str
    make: Optional[str]
    model: Optional[str]
    vehicle_type: VehicleType
    rfid_tag: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class DriverLookupResponse(BaseModel):
    vehicle: VehicleSummary
    account_id: int
    balance: Decimal
    is_governmental: bool
    recent_passages: List[PassageResponse]
