"""
Wallet schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any

from tollway.app.models.enums import TransactionType


class BalanceResponse(BaseModel):
    account_id: int
    balance: Decimal
    is_governmental: bool
    low_balance: bool


class TransactionResponse(BaseModel):
    """Schema for displaying a ledger entry."""
    id: int
    type: TransactionType
    amount: Decimal
    balance_after: Decimal
    description: Optional[str]
    reference: str
    meta_data: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    limit: int
    offset: int


class DailyTotals(BaseModel):
    date: str
    debit_total: Decimal
    credit_total: Decimal
    count: int


class SummaryResponse(BaseModel):
    account_id: int
    days: int
    series: List[DailyTotals]


class CreditRequest(BaseModel):
    """Top-up. `reference` is the external payment reference and makes retries safe."""
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: str = Field("Wallet top-up", min_length=1, max_length=255)
    reference: Optional[str] = Field(None, min_length=1, max_length=255)


class CreditResponse(BaseModel):
    success: bool = True
    message: str
    transaction: TransactionResponse
