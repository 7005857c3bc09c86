"""
Scan input validation.

Runs before the passage authorizer touches the database and returns a
typed result instead of raising, so callers decide how to report it.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from tollway.app.core.config import settings
from tollway.app.core.money import Number

MAX_RFID_LENGTH = 255


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ScanRequest:
    rfid_tag: str
    toll_gate_id: int
    weight_kg: Optional[Decimal] = None
    idempotency_key: Optional[str] = None
    staff_id: Optional[int] = None


@dataclass
class ScanValidation:
    errors: List[FieldError] = field(default_factory=list)
    normalized: Optional[ScanRequest] = None

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_scan(
    rfid_tag: Optional[str],
    toll_gate_id: Optional[int],
    weight_kg: Optional[Number] = None,
    idempotency_key: Optional[str] = None,
    staff_id: Optional[int] = None,
) -> ScanValidation:
    result = ScanValidation()

    tag = (rfid_tag or "").strip().upper()
    if not tag:
        result.errors.append(FieldError("rfid_uid", "RFID tag is required"))
    elif len(tag) > MAX_RFID_LENGTH:
        result.errors.append(FieldError("rfid_uid", f"RFID tag must be at most {MAX_RFID_LENGTH} characters"))

    if toll_gate_id is None or toll_gate_id <= 0:
        result.errors.append(FieldError("toll_gate_id", "A valid toll gate id is required"))

    weight = None
    if weight_kg is not None:
        try:
            weight = Decimal(str(weight_kg))
        except InvalidOperation:
            result.errors.append(FieldError("weight_kg", "Weight must be a number"))
        else:
            if not weight.is_finite() or weight < 0:
                result.errors.append(FieldError("weight_kg", "Weight must be zero or positive"))
            elif weight > settings.max_vehicle_weight_kg:
                result.errors.append(
                    FieldError("weight_kg", f"Weight must not exceed {settings.max_vehicle_weight_kg} kg")
                )

    key = idempotency_key.strip() if idempotency_key else None
    if key is not None and (not key or len(key) > 255):
        result.errors.append(FieldError("idempotency_key", "Idempotency key must be 1-255 characters"))

    if result.valid:
        result.normalized = ScanRequest(
            rfid_tag=tag,
            toll_gate_id=toll_gate_id,
            weight_kg=weight,
            idempotency_key=key,
            staff_id=staff_id,
        )
    return result
