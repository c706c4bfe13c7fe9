"""Account Repository Interface

Defines the contract for account persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.account import Account


class AccountRepository(ABC):
    """
    Repository interface for Account persistence

    Balance reads that precede a mutation must use for_update=True
    (SELECT FOR UPDATE); the account row is the single serialization
    point for balance changes.
    """

    @abstractmethod
    async def get_by_id(self, account_id: int, for_update: bool = False) -> Optional[Account]:
        """
        Retrieve account by ID

        Args:
            account_id: Account ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Account if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[Account]:
        """Retrieve the account owned by a user"""
        pass

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """Persist a new account and return it with its generated ID"""
        pass

    @abstractmethod
    async def update_balance(self, account_id: int, new_balance: int) -> None:
        """
        Update account balance

        Args:
            account_id: Account ID
            new_balance: New balance value (caller already holds the row lock)
        """
        pass

    @abstractmethod
    async def get_all(self) -> list[Account]:
        """Retrieve every account (used by reconciliation)"""
        pass
