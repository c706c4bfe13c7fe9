"""Background workers for the job and payment lifecycle"""
from .job_queue import JobQueue
from .job_processor import JobProcessor
from .task_scheduler import TaskSchedulerWorker
from .order_expiry import OrderExpiryWorker
from .ledger_reconciler import LedgerReconcilerWorker

__all__ = [
    "JobQueue",
    "JobProcessor",
    "TaskSchedulerWorker",
    "OrderExpiryWorker",
    "LedgerReconcilerWorker",
]
