from .base import BaseModel
from .account import Account
from .job import Job, JobStatus, TERMINAL_JOB_STATUSES, classify_job_status
from .ledger_entry import LedgerEntry, LedgerCategory
from .payment_order import PaymentOrder, PaymentOrderStatus

__all__ = [
    "BaseModel",
    "Account",
    "Job",
    "JobStatus",
    "TERMINAL_JOB_STATUSES",
    "classify_job_status",
    "LedgerEntry",
    "LedgerCategory",
    "PaymentOrder",
    "PaymentOrderStatus",
]
