"""
Hardware Gateway API Endpoints.

Called by gate controllers. Every response tells the device what to do
with the barrier through `gate_action`.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.db.session import get_db
from tollway.app.core.exceptions import AppException
from tollway.app.domain.tolling.passage_authorizer import send_receipt, within_deadline
from tollway.app.models.toll_gate import TollGate
from tollway.app.schemas.hardware import (
    GateSummary,
    HardwareAck,
    HardwareStatusReport,
    Heartbeat,
    ScanReport,
)
from tollway.app.services import gateway_adapter

router = APIRouter(prefix="/hardware", tags=["Hardware Gateway"])


def _closed(exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={**exc.to_payload(), "gate_action": "close"},
    )


def _summary(gate: TollGate, with_rates: bool = False) -> GateSummary:
    summary = GateSummary(id=gate.id, name=gate.name, is_operational=gate.is_operational())
    if with_rates:
        summary.base_toll_rate = gate.base_toll_rate
        summary.overweight_fine_rate = gate.overweight_fine_rate
        summary.weight_limit_kg = gate.weight_limit_kg
    return summary


@router.post("/scan")
async def process_scan(payload: ScanReport, db: AsyncSession = Depends(get_db)):
    """Process an RFID + weight reading from a gate controller."""
    try:
        result = await within_deadline(
            gateway_adapter.report_scan(
                db,
                payload.gate_identifier,
                payload.rfid_tag,
                payload.weight_kg,
                payload.timestamp,
            )
        )
    except AppException as exc:
        return _closed(exc)

    await send_receipt(result)
    if not result.success:
        return _closed(result.error)

    return {
        "success": True,
        "message": result.message,
        "gate_action": result.gate_action,
        "data": result.to_data(),
    }


@router.post("/status", response_model=HardwareAck)
async def update_hardware_status(payload: HardwareStatusReport, db: AsyncSession = Depends(get_db)):
    """Store the status triple reported by the device."""
    gate = await gateway_adapter.report_heartbeat(
        db,
        payload.gate_identifier,
        statuses={
            "gate_status": payload.gate_status,
            "rfid_scanner_status": payload.rfid_scanner_status,
            "weight_sensor_status": payload.weight_sensor_status,
        },
        hardware_info=payload.hardware_info,
    )
    return HardwareAck(
        message="Hardware status updated successfully",
        gate_action="close",
        server_time=datetime.now(timezone.utc),
        toll_gate=_summary(gate),
    )


@router.post("/heartbeat", response_model=HardwareAck)
async def heartbeat(payload: Heartbeat, db: AsyncSession = Depends(get_db)):
    """Connection check; returns the gate's current rates."""
    gate = await gateway_adapter.report_heartbeat(db, payload.gate_identifier)
    return HardwareAck(
        message="Heartbeat received",
        gate_action="close",
        server_time=datetime.now(timezone.utc),
        toll_gate=_summary(gate, with_rates=True),
    )
