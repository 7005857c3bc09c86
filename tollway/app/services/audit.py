"""
Audit logging service for operator and hardware actions at the gates.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from tollway.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    GATE_STATUS_CHANGED = "GATE_STATUS_CHANGED"

    # Staff operations
    CASH_PAYMENT_RECORDED = "CASH_PAYMENT_RECORDED"
    MANUAL_OVERRIDE_APPLIED = "MANUAL_OVERRIDE_APPLIED"
    FINE_APPLIED = "FINE_APPLIED"

    # Wallet
    WALLET_CREDITED = "WALLET_CREDITED"

    # Reliability
    DLQ_RETRIED = "DLQ_RETRIED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_name: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Stage an audit event in the current transaction.

    Unlike a standalone log write, the entry commits (or rolls back) together
    with the action it describes.
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_name=actor_name,
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta_data=metadata,
    )
    db.add(audit_log)
    await db.flush()
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """Audit entries, most recent first, optionally filtered."""
    query = select(AuditLog).order_by(desc(AuditLog.id))

    if target_type:
        query = query.where(AuditLog.target_type == target_type)

    if target_id:
        query = query.where(AuditLog.target_id == target_id)

    if action:
        query = query.where(AuditLog.action == action)

    result = await db.execute(query.limit(limit))
    return result.scalars().all()
