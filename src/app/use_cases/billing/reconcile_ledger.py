"""ReconcileLedger Use Case

Audits every account's ledger chain and balance.
"""

import logging
import time
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.account_repository import AccountRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.account import Account
from src.domain.ledger_entry import LedgerEntry
from .dtos import LedgerDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


def find_discrepancies(account: Account, chain: list[LedgerEntry]) -> list[LedgerDiscrepancyDTO]:
    """Chain breaks and balance drift for one account's entries (creation order)"""
    discrepancies = []

    for previous, entry in zip(chain, chain[1:]):
        if previous.balance_after != entry.balance_before:
            discrepancies.append(
                LedgerDiscrepancyDTO(
                    account_id=account.id,
                    kind="chain_break",
                    entry_id=entry.id,
                    expected=previous.balance_after,
                    actual=entry.balance_before,
                )
            )

    for entry in chain:
        if entry.balance_after - entry.balance_before != entry.signed_amount:
            discrepancies.append(
                LedgerDiscrepancyDTO(
                    account_id=account.id,
                    kind="amount_mismatch",
                    entry_id=entry.id,
                    expected=entry.balance_before + entry.signed_amount,
                    actual=entry.balance_after,
                )
            )

    if chain and chain[-1].balance_after != account.balance:
        discrepancies.append(
            LedgerDiscrepancyDTO(
                account_id=account.id,
                kind="balance_drift",
                entry_id=chain[-1].id,
                expected=chain[-1].balance_after,
                actual=account.balance,
            )
        )

    return discrepancies


class ReconcileLedger:
    """
    Use Case: Reconcile account balances against the ledger

    Business Rules:
    1. For each account, entries in creation order must chain
       (balance_after[n] == balance_before[n+1])
    2. Each entry's snapshots must differ by its signed amount
    3. The account balance must equal the last entry's balance_after
    4. Does NOT modify any data (read-only reconciliation)
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        entry_repo: LedgerEntryRepository,
    ):
        self.account_repo = account_repo
        self.entry_repo = entry_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        """
        Execute ledger reconciliation

        Returns:
            Result[ReconciliationResultDTO]: Reconciliation result with any discrepancies
        """
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting ledger reconciliation")

            accounts = await self.account_repo.get_all()
            discrepancies: list[LedgerDiscrepancyDTO] = []

            for account in accounts:
                chain = await self.entry_repo.get_chain(account.id)
                found = find_discrepancies(account, chain)

                for discrepancy in found:
                    logger.warning(
                        f"Ledger discrepancy on account {account.id}: {discrepancy.kind} "
                        f"at entry {discrepancy.entry_id}, "
                        f"expected={discrepancy.expected}, actual={discrepancy.actual}"
                    )
                discrepancies.extend(found)

            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_accounts_checked=len(accounts),
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"across {len(accounts)} accounts in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {len(accounts)} accounts balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile ledger",
                    reason=str(e),
                )
            )
