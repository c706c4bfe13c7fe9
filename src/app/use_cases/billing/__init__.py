"""Account and ledger use cases"""
from .open_account import OpenAccount
from .get_balance import GetBalance
from .list_ledger_entries import ListLedgerEntries
from .reconcile_ledger import ReconcileLedger
from .dtos import (
    OpenAccountCommandDTO,
    AccountResponseDTO,
    BalanceResponseDTO,
    LedgerEntryDTO,
    ListLedgerEntriesResponseDTO,
    LedgerDiscrepancyDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "OpenAccount",
    "GetBalance",
    "ListLedgerEntries",
    "ReconcileLedger",
    "OpenAccountCommandDTO",
    "AccountResponseDTO",
    "BalanceResponseDTO",
    "LedgerEntryDTO",
    "ListLedgerEntriesResponseDTO",
    "LedgerDiscrepancyDTO",
    "ReconciliationResultDTO",
]
