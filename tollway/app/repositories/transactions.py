"""
Transaction (ledger entry) repository.

Read-only: entries are only ever created by the ledger service.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.models.transaction import Transaction


class TransactionRepository:

    @staticmethod
    async def get_by_reference(db: AsyncSession, reference: str) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction).where(Transaction.reference == reference)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_account(
        db: AsyncSession,
        account_id: int,
        limit: int = 20,
        offset: int = 0
    ) -> List[Transaction]:
        """Newest first."""
        stmt = (
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_chronological(db: AsyncSession, account_id: int) -> List[Transaction]:
        """Oldest first, the order balance_after snapshots chain in."""
        stmt = (
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.id.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_since(db: AsyncSession, account_id: int, since: datetime) -> List[Transaction]:
        stmt = (
            select(Transaction)
            .where(
                Transaction.account_id == account_id,
                Transaction.created_at >= since
            )
            .order_by(Transaction.id.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_for_account(db: AsyncSession, account_id: int) -> int:
        result = await db.execute(
            select(func.count(Transaction.id)).where(Transaction.account_id == account_id)
        )
        return result.scalar()
