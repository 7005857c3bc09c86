"""
Toll gate repository.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.models.toll_gate import TollGate


class TollGateRepository:

    @staticmethod
    async def get(db: AsyncSession, gate_id: int) -> Optional[TollGate]:
        result = await db.execute(select(TollGate).where(TollGate.id == gate_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_identifier(db: AsyncSession, gate_identifier: str) -> Optional[TollGate]:
        result = await db.execute(
            select(TollGate).where(TollGate.gate_identifier == gate_identifier)
        )
        return result.scalar_one_or_none()
