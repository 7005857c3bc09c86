"""
Toll passage repository.
"""

from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.models.toll_passage import TollPassage


class TollPassageRepository:

    @staticmethod
    async def get(db: AsyncSession, passage_id: int) -> Optional[TollPassage]:
        result = await db.execute(select(TollPassage).where(TollPassage.id == passage_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_reference(db: AsyncSession, reference: str) -> Optional[TollPassage]:
        result = await db.execute(
            select(TollPassage).where(TollPassage.reference == reference)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def add(db: AsyncSession, passage: TollPassage) -> TollPassage:
        """Stage a passage and flush to obtain its id. The caller commits."""
        db.add(passage)
        await db.flush()
        return passage

    @staticmethod
    async def list_for_account(db: AsyncSession, account_id: int, limit: int = 10) -> List[TollPassage]:
        stmt = (
            select(TollPassage)
            .where(TollPassage.account_id == account_id)
            .order_by(TollPassage.id.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
