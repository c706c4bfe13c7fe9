"""Ledger Entry Repository Interface

Defines the contract for ledger entry persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.ledger_entry import LedgerEntry


class LedgerEntryRepository(ABC):
    """
    Repository interface for LedgerEntry persistence

    Entries are immutable and append-only.
    Idempotency is enforced via unique idempotency_key.
    """

    @abstractmethod
    async def create(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Create a new ledger entry

        Raises:
            IntegrityError: If idempotency_key already exists
        """
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[LedgerEntry]:
        """Retrieve entry by idempotency key"""
        pass

    @abstractmethod
    async def get_job_charge(self, job_id: int) -> Optional[LedgerEntry]:
        """Retrieve the job_charge entry of a job"""
        pass

    @abstractmethod
    async def get_by_account_id(
        self, account_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[LedgerEntry], int]:
        """
        Retrieve entries of an account, newest first

        Returns:
            Tuple of (entries, total count)
        """
        pass

    @abstractmethod
    async def get_chain(self, account_id: int) -> list[LedgerEntry]:
        """Retrieve every entry of an account in creation order"""
        pass
