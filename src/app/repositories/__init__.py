from .account_repository import AccountRepository
from .job_repository import JobRepository
from .ledger_entry_repository import LedgerEntryRepository
from .payment_order_repository import PaymentOrderRepository

__all__ = [
    "AccountRepository",
    "JobRepository",
    "LedgerEntryRepository",
    "PaymentOrderRepository",
]
