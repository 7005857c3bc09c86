"""
Enumerations shared by the toll models.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: System-level access, manages gates and accounts
        STAFF: Gate operators processing manual transactions
        DRIVER: Vehicle owners paying tolls from a wallet (default role)
    """
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    DRIVER = "DRIVER"


class VehicleType(str, enum.Enum):
    CAR = "car"
    BUS = "bus"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"
    EMERGENCY = "emergency"
    GOVERNMENT = "government"


class CapacityClass(str, enum.Enum):
    """Weight-capacity class declared at vehicle registration."""
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


class GateStatus(str, enum.Enum):
    OPERATIONAL = "operational"
    OPEN = "open"
    CLOSED = "closed"
    OPENING = "opening"
    CLOSING = "closing"
    OFFLINE = "offline"
    MALFUNCTION = "malfunction"


class SubsystemStatus(str, enum.Enum):
    """Status of a gate peripheral (RFID scanner, weight sensor)."""
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"
    ERROR = "error"
    MALFUNCTION = "malfunction"


class TransactionType(str, enum.Enum):
    """Ledger entry type enumeration."""
    CREDIT = "credit"  # Money entering the account
    DEBIT = "debit"  # Money leaving the account


class PassageStatus(str, enum.Enum):
    SUCCESSFUL = "successful"
    REJECTED = "rejected"


class PaymentMethod(str, enum.Enum):
    WALLET = "wallet"
    CASH_PAYMENT = "cash_payment"
    MANUAL_OVERRIDE = "manual_override"
    GOVERNMENTAL_EXEMPTION = "governmental_exemption"


class ManualTransactionType(str, enum.Enum):
    CASH_PAYMENT = "cash_payment"
    MANUAL_OVERRIDE = "manual_override"
    FINE_ADJUSTMENT = "fine_adjustment"
