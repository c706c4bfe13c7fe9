"""SQLAlchemy implementation of LedgerEntryRepository

Provides persistence for LedgerEntry entities with idempotency enforcement
via unique constraint on idempotency_key.
"""

from typing import Optional
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.ledger_entry import LedgerEntry, LedgerCategory


class SqlAlchemyLedgerEntryRepository(LedgerEntryRepository):
    """
    SQLAlchemy implementation of LedgerEntryRepository

    Features:
    - Idempotency enforcement via unique idempotency_key constraint
    - Immutable append-only entries
    - Creation-ordered chains for reconciliation
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Create a new ledger entry

        Raises:
            IntegrityError: If idempotency_key already exists (duplicate mutation attempt)
        """
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[LedgerEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.idempotency_key == idempotency_key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_job_charge(self, job_id: int) -> Optional[LedgerEntry]:
        stmt = select(LedgerEntry).where(
            LedgerEntry.job_id == job_id,
            LedgerEntry.category == LedgerCategory.JOB_CHARGE,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_account_id(
        self, account_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[LedgerEntry], int]:
        """
        Retrieve entries for an account with pagination

        Returns:
            Tuple of (entries newest first, total count)
        """
        count_stmt = select(func.count()).select_from(LedgerEntry).where(
            LedgerEntry.account_id == account_id
        )
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_chain(self, account_id: int) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at, LedgerEntry.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
