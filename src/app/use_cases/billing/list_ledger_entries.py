"""
List Ledger Entries Use Case

Retrieves the balance history of an account with pagination.
"""
from libs.result import Result, Return
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from .dtos import ListLedgerEntriesResponseDTO, LedgerEntryDTO


class ListLedgerEntries:
    """
    Use case: View ledger history

    Entries are ordered by created_at DESC (most recent first).
    """

    def __init__(self, entry_repo: LedgerEntryRepository):
        self.entry_repo = entry_repo

    async def execute(
        self, account_id: int, limit: int = 20, offset: int = 0
    ) -> Result[ListLedgerEntriesResponseDTO]:
        """
        List ledger entries for an account with pagination.

        Args:
            account_id: Account identifier
            limit: Maximum number of entries to return (default 20)
            offset: Number of entries to skip (default 0)
        """
        entries, total = await self.entry_repo.get_by_account_id(
            account_id=account_id,
            limit=limit,
            offset=offset,
        )

        entry_dtos = [
            LedgerEntryDTO(
                id=entry.id,
                category=entry.category.value,
                amount=entry.signed_amount,
                balance_before=entry.balance_before,
                balance_after=entry.balance_after,
                job_id=entry.job_id,
                order_id=entry.order_id,
                details=entry.details,
                created_at=entry.created_at,
            )
            for entry in entries
        ]

        return Return.ok(
            ListLedgerEntriesResponseDTO(
                entries=entry_dtos,
                total=total,
                limit=limit,
                offset=offset,
            )
        )
