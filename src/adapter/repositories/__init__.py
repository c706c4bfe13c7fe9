from .account_repository import SqlAlchemyAccountRepository
from .job_repository import SqlAlchemyJobRepository
from .ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from .payment_order_repository import SqlAlchemyPaymentOrderRepository

__all__ = [
    "SqlAlchemyAccountRepository",
    "SqlAlchemyJobRepository",
    "SqlAlchemyLedgerEntryRepository",
    "SqlAlchemyPaymentOrderRepository",
]
