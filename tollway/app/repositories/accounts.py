"""
Account repository.
"""

from decimal import Decimal
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.models.account import Account


class AccountRepository:

    @staticmethod
    async def get(db: AsyncSession, account_id: int) -> Optional[Account]:
        result = await db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_user(db: AsyncSession, user_id: int) -> Optional[Account]:
        result = await db.execute(select(Account).where(Account.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_balance(db: AsyncSession, account_id: int) -> Optional[Decimal]:
        """Current balance straight from the database, bypassing the identity map."""
        result = await db.execute(select(Account.balance).where(Account.id == account_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_for_update(db: AsyncSession, account_id: int) -> Optional[Account]:
        """
        Load an account and lock its row until the current transaction ends.

        `populate_existing` refreshes an instance already in the identity map,
        so the balance read here is the one the lock protects.
        """
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
