"""SQLAlchemy implementation of AccountRepository

Provides persistence for Account entities with pessimistic locking support
to serialize concurrent balance mutations.
"""

from typing import Optional
from datetime import datetime
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.account_repository import AccountRepository
from src.domain.account import Account


class SqlAlchemyAccountRepository(AccountRepository):
    """
    SQLAlchemy implementation of AccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Atomic balance updates
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, account_id: int, for_update: bool = False) -> Optional[Account]:
        """
        Retrieve account by ID with optional row-level locking

        Args:
            account_id: Account ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Account if found, None otherwise
        """
        stmt = select(Account).where(Account.id == account_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: str) -> Optional[Account]:
        stmt = select(Account).where(Account.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, account: Account) -> Account:
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def update_balance(self, account_id: int, new_balance: int) -> None:
        """
        Update account balance and updated_at timestamp

        Note:
            Should be called within a transaction with the account already locked
        """
        account = await self.get_by_id(account_id, for_update=False)
        if account:
            account.balance = new_balance
            account.updated_at = datetime.utcnow()
            self.session.add(account)
            await self.session.flush()

    async def get_all(self) -> list[Account]:
        stmt = select(Account).order_by(Account.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
