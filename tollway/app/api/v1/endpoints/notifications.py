"""
Notification API Endpoints.

Receipts and alerts written by the receipt worker.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.db.session import get_db
from tollway.app.core.dependencies import get_current_user
from tollway.app.schemas.notification import NotificationResponse
from tollway.app.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_my_notifications(
    unread_only: bool = False,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await NotificationService.list_for_user(db, current_user["user_id"], unread_only=unread_only)


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    success = await NotificationService.mark_read(db, notification_id, current_user["user_id"])
    if not success:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"status": "success"}
