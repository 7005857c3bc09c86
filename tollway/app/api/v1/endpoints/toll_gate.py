"""
Toll Gate API Endpoints.

RFID verification used by gate controllers and kiosks, and gate status.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.db.session import get_db
from tollway.app.core.exceptions import GateNotFoundError
from tollway.app.domain.tolling.passage_authorizer import (
    PassageAuthorizer,
    build_scan_request,
    send_receipt,
    within_deadline,
)
from tollway.app.repositories.toll_gates import TollGateRepository
from tollway.app.schemas.toll_gate import (
    PassageData,
    TollGateStatus,
    TollGateStatusResponse,
    VerifyRequest,
    VerifyResponse,
)

router = APIRouter(prefix="/toll-gate", tags=["Toll Gate"])


@router.post("/verify", response_model=VerifyResponse)
async def verify_rfid(
    payload: VerifyRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db)
):
    """
    Verify an RFID tag and settle the toll.

    Rejections come back in the error envelope with the matching status
    code (402, 404, 409). Sending the same idempotency key again returns the
    first outcome without charging twice.
    """
    request = build_scan_request(
        payload.rfid_uid,
        payload.toll_gate_id,
        payload.weight_kg,
        idempotency_key=payload.idempotency_key or idempotency_key,
    )

    result = await within_deadline(PassageAuthorizer.authorize(db, request))
    await send_receipt(result)
    if not result.success:
        raise result.error

    return VerifyResponse(
        message=result.message,
        gate_action=result.gate_action,
        data=PassageData(**result.to_data()),
    )


@router.get("/status", response_model=TollGateStatusResponse)
async def get_gate_status(
    toll_gate_id: int = Query(..., gt=0),
    db: AsyncSession = Depends(get_db)
):
    """Gate configuration and whether it currently accepts passages."""
    gate = await TollGateRepository.get(db, toll_gate_id)
    if gate is None:
        raise GateNotFoundError(toll_gate_id)

    return TollGateStatusResponse(
        data=TollGateStatus(
            id=gate.id,
            name=gate.name,
            location=gate.location,
            gate_identifier=gate.gate_identifier,
            base_toll_rate=gate.base_toll_rate,
            overweight_fine_rate=gate.overweight_fine_rate,
            weight_limit_kg=gate.weight_limit_kg,
            is_active=gate.is_active,
            gate_status=gate.gate_status.value,
            rfid_scanner_status=gate.rfid_scanner_status.value,
            weight_sensor_status=gate.weight_sensor_status.value,
            last_heartbeat=gate.last_heartbeat,
            is_operational=gate.is_operational(),
            hardware_info=gate.hardware_info,
        )
    )
