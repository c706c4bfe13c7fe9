"""Financial Ledger

The only code path that mutates Account.balance. Every mutation locks the
account row, appends one immutable LedgerEntry with balance snapshots and
writes the new balance, inside the caller's transaction. The caller owns
commit/rollback, so a ledger write always lands together with the job or
order change that caused it.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from src.app.repositories.account_repository import AccountRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.details import (
    JobChargeDetails,
    JobRefundDetails,
    OrderSettlementDetails,
    LedgerEntryDetails,
)
from src.domain.errors import AccountNotFound, InsufficientBalance
from src.domain.job import Job
from src.domain.ledger_entry import LedgerEntry, LedgerCategory, CREDIT_CATEGORIES
from src.domain.payment_order import PaymentOrder

logger = logging.getLogger(__name__)


def charge_key(job_id: int) -> str:
    return f"{LedgerCategory.JOB_CHARGE.value}:{job_id}"


def refund_key(job_id: int) -> str:
    return f"{LedgerCategory.JOB_REFUND.value}:{job_id}"


def settlement_key(order_id: int) -> str:
    return f"{LedgerCategory.ORDER_SETTLEMENT.value}:{order_id}"


def derive_unit_price(charge_amount: int, expected_unit_count: int) -> int:
    """Per-unit price recovered from a charge, rounded half-up"""
    price = Decimal(charge_amount) / Decimal(expected_unit_count)
    return int(price.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class FinancialLedger:
    """
    Balance mutations for jobs and payment orders

    Business Rules:
    1. Account row is locked (SELECT FOR UPDATE) for every mutation
    2. Balance never goes negative
    3. One charge and at most one refund per job, one settlement per order
       (idempotency keys; a repeated call returns the existing entry)
    4. Entries chain: balance_before of a new entry is the balance_after
       of the previous one
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        entry_repo: LedgerEntryRepository,
    ):
        self.account_repo = account_repo
        self.entry_repo = entry_repo

    async def charge(
        self, account_id: int, expected_unit_count: int, unit_price: int, job_id: int
    ) -> LedgerEntry:
        """
        Debit a job's full price at creation

        Raises:
            AccountNotFound: unknown account
            InsufficientBalance: balance < expected_unit_count * unit_price
        """
        key = charge_key(job_id)
        existing = await self.entry_repo.get_by_idempotency_key(key)
        if existing:
            return existing

        amount = expected_unit_count * unit_price
        details = JobChargeDetails(unit_price=unit_price, expected_unit_count=expected_unit_count)
        return await self._post(
            account_id=account_id,
            category=LedgerCategory.JOB_CHARGE,
            amount=amount,
            idempotency_key=key,
            details=details,
            job_id=job_id,
        )

    async def refund(self, job: Job, reason: str = "") -> Optional[LedgerEntry]:
        """
        Credit back the units a job did not deliver

        A job with zero delivered units gets its whole charge back; otherwise
        the unit price is recovered from the charge entry (half-up rounding)
        and the refund is capped at the charged amount.

        Returns:
            The refund entry, or None when nothing is owed
        """
        overcharged = job.expected_unit_count - job.actual_unit_count
        if overcharged <= 0:
            return None

        key = refund_key(job.id)
        existing = await self.entry_repo.get_by_idempotency_key(key)
        if existing:
            return existing

        charge = await self.entry_repo.get_job_charge(job.id)
        if not charge:
            logger.warning(f"Job {job.id} has no charge entry, skipping refund")
            return None

        full_refund = job.actual_unit_count <= 0
        unit_price = derive_unit_price(charge.amount, job.expected_unit_count)

        if full_refund:
            amount = charge.amount
        else:
            amount = overcharged * unit_price
            if amount > charge.amount:
                logger.warning(
                    f"Refund for job {job.id} ({amount}) exceeds charge ({charge.amount}) "
                    f"after unit price rounding, capping at charge amount"
                )
                amount = charge.amount
            elif amount + job.actual_unit_count * unit_price != charge.amount:
                logger.warning(
                    f"Rounding drift on job {job.id}: charge={charge.amount}, "
                    f"unit_price={unit_price}, expected_units={job.expected_unit_count}"
                )

        if amount <= 0:
            return None

        details = JobRefundDetails(
            unit_price=unit_price,
            expected_unit_count=job.expected_unit_count,
            actual_unit_count=job.actual_unit_count,
            full_refund=full_refund,
            reason=reason,
        )
        entry = await self._post(
            account_id=job.account_id,
            category=LedgerCategory.JOB_REFUND,
            amount=amount,
            idempotency_key=key,
            details=details,
            job_id=job.id,
        )
        logger.info(
            f"Refunded {amount} to account {job.account_id} for job {job.id} "
            f"({job.actual_unit_count}/{job.expected_unit_count} units delivered)"
        )
        return entry

    async def settle(
        self,
        order: PaymentOrder,
        settled_via: str,
        external_transaction_id: Optional[str] = None,
    ) -> LedgerEntry:
        """Credit a paid recharge order"""
        key = settlement_key(order.id)
        existing = await self.entry_repo.get_by_idempotency_key(key)
        if existing:
            return existing

        details = OrderSettlementDetails(
            provider=order.provider,
            merchant_order_id=order.merchant_order_id,
            external_transaction_id=external_transaction_id,
            settled_via=settled_via,
        )
        return await self._post(
            account_id=order.account_id,
            category=LedgerCategory.ORDER_SETTLEMENT,
            amount=order.amount,
            idempotency_key=key,
            details=details,
            order_id=order.id,
        )

    async def _post(
        self,
        account_id: int,
        category: LedgerCategory,
        amount: int,
        idempotency_key: str,
        details: LedgerEntryDetails,
        job_id: Optional[int] = None,
        order_id: Optional[int] = None,
    ) -> LedgerEntry:
        account = await self.account_repo.get_by_id(account_id, for_update=True)
        if not account:
            raise AccountNotFound(account_id)

        balance_before = account.balance
        if category in CREDIT_CATEGORIES:
            balance_after = balance_before + amount
        else:
            if balance_before < amount:
                raise InsufficientBalance(account_id, amount, balance_before)
            balance_after = balance_before - amount

        entry = LedgerEntry(
            account_id=account_id,
            category=category,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            job_id=job_id,
            order_id=order_id,
            idempotency_key=idempotency_key,
            details=details.model_dump(mode="json"),
        )
        created = await self.entry_repo.create(entry)
        await self.account_repo.update_balance(account_id, balance_after)
        return created
