"""Order Settlement

The guarded transition shared by the webhook, the polling fallback, the
user close path and the expiry sweep. Callers hold the order row lock
for the duration and commit or roll back the surrounding transaction.
"""

import logging
from datetime import datetime
from enum import Enum
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.app.services.financial_ledger import FinancialLedger
from src.app.services.payment_provider import ProviderOrder, ProviderTradeState
from src.domain.errors import AmountMismatch, OrderNotFound, OrderNotPending
from src.domain.payment_order import PaymentOrder, PaymentOrderStatus

logger = logging.getLogger(__name__)


class SettlementOutcome(str, Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    MARKED_FAILED = "marked_failed"
    MARKED_CLOSED = "marked_closed"
    UNCHANGED = "unchanged"


FAILED_TRADE_STATES = frozenset({ProviderTradeState.PAYERROR, ProviderTradeState.REVOKED})


class OrderSettlement:
    def __init__(self, order_repo: PaymentOrderRepository, ledger: FinancialLedger):
        self.order_repo = order_repo
        self.ledger = ledger

    async def apply(
        self, merchant_order_id: str, provider_order: ProviderOrder, settled_via: str
    ) -> SettlementOutcome:
        """
        Lock the order and apply the provider's view of it

        Raises:
            OrderNotFound: unknown merchant order id
            OrderNotPending: paid notification for a failed/closed order
            AmountMismatch: paid amount differs from the order amount
        """
        order = await self.order_repo.get_by_merchant_order_id(merchant_order_id, for_update=True)
        if not order:
            raise OrderNotFound(merchant_order_id)
        return await self.apply_locked(order, provider_order, settled_via)

    async def apply_locked(
        self, order: PaymentOrder, provider_order: ProviderOrder, settled_via: str
    ) -> SettlementOutcome:
        """Same as apply() for an order row the caller already locked"""
        if provider_order.is_paid:
            return await self._settle(order, provider_order, settled_via)

        if order.status != PaymentOrderStatus.PENDING:
            return SettlementOutcome.UNCHANGED

        if provider_order.trade_state in FAILED_TRADE_STATES:
            self._transition(order, PaymentOrderStatus.FAILED)
            await self.order_repo.save(order)
            logger.info(
                f"Order {order.merchant_order_id} failed at provider "
                f"({provider_order.trade_state.value})"
            )
            return SettlementOutcome.MARKED_FAILED

        if provider_order.trade_state == ProviderTradeState.CLOSED:
            self._transition(order, PaymentOrderStatus.CLOSED)
            await self.order_repo.save(order)
            logger.info(f"Order {order.merchant_order_id} closed at provider")
            return SettlementOutcome.MARKED_CLOSED

        return SettlementOutcome.UNCHANGED

    async def _settle(
        self, order: PaymentOrder, provider_order: ProviderOrder, settled_via: str
    ) -> SettlementOutcome:
        if order.status == PaymentOrderStatus.SUCCESS:
            logger.info(
                f"Order {order.merchant_order_id} already settled "
                f"(ledger entry {order.linked_ledger_entry_id}), ignoring {settled_via}"
            )
            return SettlementOutcome.ALREADY_SETTLED

        if order.status != PaymentOrderStatus.PENDING:
            logger.error(
                f"Paid notification for {order.status.value} order "
                f"{order.merchant_order_id} via {settled_via}, manual review required"
            )
            raise OrderNotPending(order.merchant_order_id, order.status.value)

        if provider_order.amount_total != order.amount:
            logger.error(
                f"Amount mismatch on order {order.merchant_order_id}: "
                f"expected {order.amount}, received {provider_order.amount_total}, "
                f"manual review required"
            )
            raise AmountMismatch(order.merchant_order_id, order.amount, provider_order.amount_total)

        entry = await self.ledger.settle(order, settled_via, provider_order.transaction_id)

        self._transition(order, PaymentOrderStatus.SUCCESS)
        order.settled_at = order.updated_at
        order.linked_ledger_entry_id = entry.id
        order.external_transaction_id = provider_order.transaction_id
        await self.order_repo.save(order)

        logger.info(
            f"Settled order {order.merchant_order_id} via {settled_via}: "
            f"credited {order.amount} to account {order.account_id}"
        )
        return SettlementOutcome.SETTLED

    @staticmethod
    def _transition(order: PaymentOrder, status: PaymentOrderStatus) -> None:
        order.status = status
        order.updated_at = datetime.utcnow()
