"""Unit tests for FinancialLedger

Covers the charge/refund arithmetic of a 4-unit job at unit price 20
charged from a balance of 1000, and order settlement credits.
"""

import pytest
from unittest.mock import AsyncMock

from src.app.services.financial_ledger import FinancialLedger, derive_unit_price
from src.domain.account import Account
from src.domain.errors import AccountNotFound, InsufficientBalance
from src.domain.job import Job, JobStatus
from src.domain.ledger_entry import LedgerEntry, LedgerCategory
from src.domain.payment_order import PaymentOrder


@pytest.fixture
def account():
    return Account(id=1, user_id="user_1", balance=1000)


@pytest.fixture
def mock_account_repo(account):
    repo = AsyncMock()
    repo.get_by_id.return_value = account

    async def update_balance(account_id, new_balance):
        account.balance = new_balance

    repo.update_balance.side_effect = update_balance
    return repo


@pytest.fixture
def mock_entry_repo():
    repo = AsyncMock()
    repo.get_by_idempotency_key.return_value = None
    created = []

    async def create(entry):
        entry.id = len(created) + 1
        created.append(entry)
        return entry

    repo.create.side_effect = create
    repo.created = created
    return repo


@pytest.fixture
def ledger(mock_account_repo, mock_entry_repo):
    return FinancialLedger(mock_account_repo, mock_entry_repo)


def charge_entry(amount=80, job_id=10):
    return LedgerEntry(
        id=1,
        account_id=1,
        category=LedgerCategory.JOB_CHARGE,
        amount=amount,
        balance_before=1000,
        balance_after=1000 - amount,
        job_id=job_id,
        idempotency_key=f"job_charge:{job_id}",
    )


def processed_job(actual, expected=4):
    return Job(
        id=10,
        account_id=1,
        prompt="a cat",
        status=JobStatus.PROCESSING,
        batch_count=expected,
        expected_unit_count=expected,
        actual_unit_count=actual,
    )


class TestCharge:
    @pytest.mark.asyncio
    async def test_charge_debits_expected_units_times_price(
        self, ledger, account, mock_account_repo, mock_entry_repo
    ):
        """
        Given: Balance 1000
        When: A 4-unit job at price 20 is charged
        Then: An 80 job_charge entry is written and the balance is 920
        """
        entry = await ledger.charge(account_id=1, expected_unit_count=4, unit_price=20, job_id=10)

        assert entry.category == LedgerCategory.JOB_CHARGE
        assert entry.amount == 80
        assert entry.balance_before == 1000
        assert entry.balance_after == 920
        assert entry.job_id == 10
        assert entry.idempotency_key == "job_charge:10"
        assert entry.details == {"category": "job_charge", "unit_price": 20, "expected_unit_count": 4}
        assert account.balance == 920
        mock_account_repo.get_by_id.assert_called_once_with(1, for_update=True)

    @pytest.mark.asyncio
    async def test_charge_rejects_insufficient_balance(
        self, ledger, account, mock_entry_repo
    ):
        account.balance = 50

        with pytest.raises(InsufficientBalance) as exc_info:
            await ledger.charge(account_id=1, expected_unit_count=4, unit_price=20, job_id=10)

        assert exc_info.value.required == 80
        assert exc_info.value.available == 50
        assert account.balance == 50
        mock_entry_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_charge_allows_spending_entire_balance(self, ledger, account):
        account.balance = 80

        entry = await ledger.charge(account_id=1, expected_unit_count=4, unit_price=20, job_id=10)

        assert entry.balance_after == 0
        assert account.balance == 0

    @pytest.mark.asyncio
    async def test_charge_unknown_account(self, ledger, mock_account_repo):
        mock_account_repo.get_by_id.return_value = None

        with pytest.raises(AccountNotFound):
            await ledger.charge(account_id=99, expected_unit_count=1, unit_price=20, job_id=10)

    @pytest.mark.asyncio
    async def test_charge_is_idempotent_per_job(
        self, ledger, mock_account_repo, mock_entry_repo
    ):
        existing = charge_entry()
        mock_entry_repo.get_by_idempotency_key.return_value = existing

        entry = await ledger.charge(account_id=1, expected_unit_count=4, unit_price=20, job_id=10)

        assert entry is existing
        mock_account_repo.get_by_id.assert_not_called()
        mock_entry_repo.create.assert_not_called()


class TestRefund:
    @pytest.fixture
    def charged(self, account, mock_entry_repo):
        account.balance = 920
        mock_entry_repo.get_job_charge.return_value = charge_entry()

    @pytest.mark.asyncio
    async def test_no_refund_when_all_units_delivered(self, ledger, account, charged, mock_entry_repo):
        """All 4 units delivered: no refund, balance stays 920"""
        refund = await ledger.refund(processed_job(actual=4))

        assert refund is None
        assert account.balance == 920
        mock_entry_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_partial_refund_for_undelivered_units(self, ledger, account, charged):
        """3 of 4 delivered: refund 20, balance 920 -> 940"""
        refund = await ledger.refund(processed_job(actual=3))

        assert refund.category == LedgerCategory.JOB_REFUND
        assert refund.amount == 20
        assert refund.balance_before == 920
        assert refund.balance_after == 940
        assert refund.idempotency_key == "job_refund:10"
        assert refund.details["full_refund"] is False
        assert account.balance == 940

    @pytest.mark.asyncio
    async def test_full_refund_when_nothing_delivered(self, ledger, account, charged):
        """0 of 4 delivered: whole charge (80) back, balance 920 -> 1000"""
        refund = await ledger.refund(processed_job(actual=0), reason="All units failed")

        assert refund.amount == 80
        assert refund.balance_after == 1000
        assert refund.details["full_refund"] is True
        assert refund.details["reason"] == "All units failed"
        assert account.balance == 1000

    @pytest.mark.asyncio
    async def test_charge_equals_refund_plus_delivered(self, ledger, charged):
        for actual in range(0, 5):
            job = processed_job(actual=actual)
            refund = await ledger.refund(job)
            refunded = refund.amount if refund else 0
            assert refunded + actual * 20 == 80

    @pytest.mark.asyncio
    async def test_refund_without_charge_entry_is_skipped(self, ledger, mock_entry_repo):
        mock_entry_repo.get_job_charge.return_value = None

        refund = await ledger.refund(processed_job(actual=0))

        assert refund is None
        mock_entry_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_refund_is_idempotent_per_job(self, ledger, charged, mock_entry_repo):
        existing = charge_entry()
        mock_entry_repo.get_by_idempotency_key.return_value = existing

        refund = await ledger.refund(processed_job(actual=0))

        assert refund is existing
        mock_entry_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_rounded_unit_price_refund_is_capped_at_charge(self, ledger, account, mock_entry_repo):
        """Charge 9 over 6 units rounds to unit price 2; 5 undelivered would refund 10"""
        account.balance = 991
        mock_entry_repo.get_job_charge.return_value = charge_entry(amount=9)

        refund = await ledger.refund(processed_job(actual=1, expected=6))

        assert refund.amount == 9
        assert refund.details["unit_price"] == 2


class TestDeriveUnitPrice:
    def test_exact_division(self):
        assert derive_unit_price(80, 4) == 20

    def test_rounds_half_up(self):
        assert derive_unit_price(10, 4) == 3
        assert derive_unit_price(9, 6) == 2

    def test_rounds_down_below_half(self):
        assert derive_unit_price(100, 3) == 33


class TestSettle:
    @pytest.mark.asyncio
    async def test_settle_credits_order_amount(self, ledger, account):
        order = PaymentOrder(
            id=7,
            account_id=1,
            amount=10000,
            provider="wechat_pay",
            merchant_order_id="M7",
            expire_at=account.created_at,
        )

        entry = await ledger.settle(order, "webhook", "4200000001")

        assert entry.category == LedgerCategory.ORDER_SETTLEMENT
        assert entry.amount == 10000
        assert entry.order_id == 7
        assert entry.job_id is None
        assert entry.balance_after == 11000
        assert entry.idempotency_key == "order_settlement:7"
        assert entry.details["settled_via"] == "webhook"
        assert entry.details["external_transaction_id"] == "4200000001"
        assert account.balance == 11000
