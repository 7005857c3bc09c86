"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from tollway.app.api.v1.endpoints import (
    toll_gate, hardware, wallet, admin, staff_transactions, notifications
)

router = APIRouter()

# Gate-facing endpoints
router.include_router(toll_gate.router)
router.include_router(hardware.router)

# Driver wallet
router.include_router(wallet.router)

# Operators
router.include_router(staff_transactions.router)
router.include_router(admin.router)

router.include_router(notifications.router)
