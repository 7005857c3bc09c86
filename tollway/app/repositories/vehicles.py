"""
Vehicle repository.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from tollway.app.models.vehicle import Vehicle


def normalize_rfid(tag: str) -> str:
    """Tags are compared upper-cased with surrounding whitespace removed."""
    return tag.strip().upper()


class VehicleRepository:

    @staticmethod
    async def get_active_by_rfid(db: AsyncSession, rfid_tag: str) -> Optional[Vehicle]:
        """Active vehicle carrying the tag, with its account loaded."""
        stmt = (
            select(Vehicle)
            .options(joinedload(Vehicle.account))
            .where(
                Vehicle.rfid_tag == normalize_rfid(rfid_tag),
                Vehicle.is_active.is_(True)
            )
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_registration(db: AsyncSession, registration_number: str) -> Optional[Vehicle]:
        stmt = (
            select(Vehicle)
            .options(joinedload(Vehicle.account))
            .where(Vehicle.registration_number == registration_number.strip().upper())
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
