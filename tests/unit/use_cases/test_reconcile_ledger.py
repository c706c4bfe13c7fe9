"""Unit tests for ReconcileLedger use case

Tests cover:
- Chain continuity between consecutive entries
- Snapshot arithmetic per entry
- Account balance against the last entry
- Error handling
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.billing.reconcile_ledger import ReconcileLedger, find_discrepancies
from src.domain.account import Account
from src.domain.ledger_entry import LedgerEntry, LedgerCategory


def entry(entry_id, category, amount, before, after):
    return LedgerEntry(
        id=entry_id,
        account_id=1,
        category=category,
        amount=amount,
        balance_before=before,
        balance_after=after,
        idempotency_key=f"{category.value}:{entry_id}",
    )


def healthy_chain():
    """Recharge 1000, charge 80, refund 20"""
    return [
        entry(1, LedgerCategory.ORDER_SETTLEMENT, 1000, 0, 1000),
        entry(2, LedgerCategory.JOB_CHARGE, 80, 1000, 920),
        entry(3, LedgerCategory.JOB_REFUND, 20, 920, 940),
    ]


@pytest.fixture
def mock_account_repo():
    return MagicMock()


@pytest.fixture
def mock_entry_repo():
    return MagicMock()


@pytest.fixture
def reconcile_use_case(mock_account_repo, mock_entry_repo):
    return ReconcileLedger(account_repo=mock_account_repo, entry_repo=mock_entry_repo)


class TestFindDiscrepancies:
    def test_healthy_chain(self):
        account = Account(id=1, user_id="user_1", balance=940)

        assert find_discrepancies(account, healthy_chain()) == []

    def test_chain_break(self):
        chain = healthy_chain()
        chain[2].balance_before = 900
        chain[2].balance_after = 920
        account = Account(id=1, user_id="user_1", balance=920)

        found = find_discrepancies(account, chain)

        assert [d.kind for d in found] == ["chain_break"]
        assert found[0].entry_id == 3
        assert found[0].expected == 920
        assert found[0].actual == 900

    def test_amount_mismatch(self):
        chain = healthy_chain()
        chain[1].balance_after = 900
        chain[2].balance_before = 900
        chain[2].balance_after = 920
        account = Account(id=1, user_id="user_1", balance=920)

        found = find_discrepancies(account, chain)

        assert [d.kind for d in found] == ["amount_mismatch"]
        assert found[0].expected == 920
        assert found[0].actual == 900

    def test_balance_drift(self):
        account = Account(id=1, user_id="user_1", balance=1000)

        found = find_discrepancies(account, healthy_chain())

        assert [d.kind for d in found] == ["balance_drift"]
        assert found[0].expected == 940
        assert found[0].actual == 1000

    def test_account_without_entries(self):
        account = Account(id=1, user_id="user_1", balance=500)

        assert find_discrepancies(account, []) == []


@pytest.mark.asyncio
class TestReconcileLedger:
    async def test_all_accounts_balanced(self, reconcile_use_case, mock_account_repo, mock_entry_repo):
        """
        Given: Two accounts whose ledgers match their balances
        When: Reconciliation runs
        Then: No discrepancies are reported
        """
        mock_account_repo.get_all = AsyncMock(
            return_value=[
                Account(id=1, user_id="user_1", balance=940),
                Account(id=2, user_id="user_2", balance=0),
            ]
        )
        mock_entry_repo.get_chain = AsyncMock(side_effect=[healthy_chain(), []])

        result = await reconcile_use_case.execute()

        assert result.is_ok()
        assert result.value.total_accounts_checked == 2
        assert result.value.discrepancies_found == 0
        assert result.value.execution_time_ms >= 0

    async def test_reports_drift(self, reconcile_use_case, mock_account_repo, mock_entry_repo):
        mock_account_repo.get_all = AsyncMock(
            return_value=[Account(id=1, user_id="user_1", balance=1000)]
        )
        mock_entry_repo.get_chain = AsyncMock(return_value=healthy_chain())

        result = await reconcile_use_case.execute()

        assert result.value.discrepancies_found == 1
        assert result.value.discrepancies[0].kind == "balance_drift"

    async def test_repository_error(self, reconcile_use_case, mock_account_repo):
        mock_account_repo.get_all = AsyncMock(side_effect=RuntimeError("db down"))

        result = await reconcile_use_case.execute()

        assert result.is_err()
        assert result.error.code == "RECONCILIATION_FAILED"
        assert "db down" in result.error.reason
