"""
Hardware Gateway Adapter.

Entry point for gate controllers: RFID/weight scans, hardware status reports
and heartbeats. Scans are handed to the passage authorizer; status reports
feed the gate check it performs.
"""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.core.exceptions import GateNotFoundError
from tollway.app.core.money import Number
from tollway.app.domain.tolling.passage_authorizer import (
    AuthorizationResult,
    PassageAuthorizer,
    build_scan_request,
)
from tollway.app.models.enums import GateStatus, SubsystemStatus
from tollway.app.models.toll_gate import TollGate
from tollway.app.repositories.toll_gates import TollGateRepository
from tollway.app.services.audit import AuditAction, log_event

logger = logging.getLogger("tollway.hardware")

STATUS_FIELDS = {
    "gate_status": GateStatus,
    "rfid_scanner_status": SubsystemStatus,
    "weight_sensor_status": SubsystemStatus,
}


def scan_token(gate_identifier: str, rfid_tag: str, device_timestamp: datetime) -> str:
    """
    Stable idempotency token for a device scan.

    A controller that retries the same read sends the same timestamp, so the
    retry maps to the passage already recorded.
    """
    if device_timestamp.tzinfo is None:
        device_timestamp = device_timestamp.replace(tzinfo=timezone.utc)
    raw = f"{gate_identifier}|{rfid_tag.strip().upper()}|{device_timestamp.astimezone(timezone.utc).isoformat()}"
    return "HW-" + hashlib.sha256(raw.encode("utf-8")).hexdigest()[:40]


async def _gate_by_identifier(db: AsyncSession, gate_identifier: str) -> TollGate:
    gate = await TollGateRepository.get_by_identifier(db, gate_identifier)
    if gate is None:
        raise GateNotFoundError(gate_identifier)
    return gate


async def report_scan(
    db: AsyncSession,
    gate_identifier: str,
    rfid_tag: str,
    weight_kg: Optional[Number] = None,
    device_timestamp: Optional[datetime] = None
) -> AuthorizationResult:
    gate = await _gate_by_identifier(db, gate_identifier)

    token = scan_token(gate_identifier, rfid_tag or "", device_timestamp) if device_timestamp else None
    request = build_scan_request(rfid_tag, gate.id, weight_kg, idempotency_key=token)

    gate.last_heartbeat = datetime.now(timezone.utc)
    await db.commit()

    result = await PassageAuthorizer.authorize(db, request)

    logger.info(
        "Device scan processed",
        extra={
            "gate_identifier": gate_identifier,
            "passage_id": result.passage.id,
            "gate_action": result.gate_action,
            "replayed": result.replayed,
        }
    )
    return result


async def report_heartbeat(
    db: AsyncSession,
    gate_identifier: str,
    statuses: Optional[Dict[str, Any]] = None,
    hardware_info: Optional[Dict[str, Any]] = None
) -> TollGate:
    """
    Record a heartbeat, optionally with new hardware status values.

    Status changes are audit-logged with their previous values.
    """
    gate = await _gate_by_identifier(db, gate_identifier)

    changes = {}
    for name, value in (statuses or {}).items():
        if value is None or name not in STATUS_FIELDS:
            continue
        new_value = STATUS_FIELDS[name](value)
        old_value = getattr(gate, name)
        if new_value != old_value:
            changes[name] = {"from": old_value.value, "to": new_value.value}
            setattr(gate, name, new_value)

    if hardware_info is not None:
        gate.hardware_info = hardware_info
    gate.last_heartbeat = datetime.now(timezone.utc)

    if changes:
        await log_event(
            db,
            action=AuditAction.GATE_STATUS_CHANGED,
            actor_name=gate_identifier,
            target_type="toll_gate",
            target_id=gate.id,
            metadata=changes,
        )
        logger.info(
            "Gate status changed",
            extra={"gate_identifier": gate_identifier, "changes": changes, "operational": gate.is_operational()}
        )

    await db.commit()
    return gate
