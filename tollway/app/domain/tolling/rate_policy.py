"""
Rate Policy.

Pure pricing of a single passage: flat gate toll, flat overweight fine,
governmental exemption. No I/O; the same inputs always give the same quote.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from tollway.app.core.money import ZERO, to_money, Number
from tollway.app.models.enums import CapacityClass, VehicleType
from tollway.app.models.toll_gate import TollGate


@dataclass(frozen=True)
class RateQuote:
    toll_amount: Decimal
    fine_amount: Decimal
    total_amount: Decimal
    is_overweight: bool
    is_exempt: bool

    def breakdown(self) -> dict:
        return {
            "toll_amount": str(self.toll_amount),
            "fine_amount": str(self.fine_amount),
            "total_amount": str(self.total_amount),
            "is_overweight": self.is_overweight,
            "is_exempt": self.is_exempt,
        }


def is_overweight(weight_kg: Optional[Number], weight_limit_kg: Number) -> bool:
    """Strictly above the limit. Missing or zero weight is never overweight."""
    if not weight_kg:
        return False
    return Decimal(str(weight_kg)) > Decimal(str(weight_limit_kg))


def evaluate(
    gate: TollGate,
    vehicle_weight_kg: Optional[Number],
    vehicle_capacity_class: Optional[CapacityClass],
    vehicle_category: VehicleType,
    account_exempt: bool = False,
) -> RateQuote:
    """
    Quote the toll and fine for one passage.

    Capacity class does not change the amounts under the flat tariff; it is
    part of the input so class-based tariffs can be added here.
    """
    overweight = is_overweight(vehicle_weight_kg, gate.weight_limit_kg)

    if vehicle_category == VehicleType.GOVERNMENT or account_exempt:
        return RateQuote(
            toll_amount=ZERO,
            fine_amount=ZERO,
            total_amount=ZERO,
            is_overweight=overweight,
            is_exempt=True,
        )

    toll = to_money(gate.base_toll_rate)
    fine = to_money(gate.overweight_fine_rate) if overweight else ZERO

    return RateQuote(
        toll_amount=toll,
        fine_amount=fine,
        total_amount=toll + fine,
        is_overweight=overweight,
        is_exempt=False,
    )
