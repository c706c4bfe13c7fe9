"""ExpirePaymentOrders Use Case

Expiry sweep: closes pending orders past their expire_at.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.order_settlement import OrderSettlement, SettlementOutcome
from src.app.services.payment_provider import PaymentProvider
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.errors import AmountMismatch, OrderAlreadyPaid, PaymentProviderError
from src.domain.payment_order import PaymentOrder, PaymentOrderStatus
from .dtos import ExpiryResultDTO

logger = logging.getLogger(__name__)


class ExpirePaymentOrders:
    """
    Use Case: Close expired pending orders

    Business Rules:
    1. Orders are claimed with the skip-locked pattern, so sweep replicas
       never close the same order twice
    2. Orders the payer paid in the meantime are settled, not closed
    3. Orders whose provider close fails stay pending for the next sweep
    """

    def __init__(
        self,
        uow: UnitOfWork,
        order_repo: PaymentOrderRepository,
        settlement: OrderSettlement,
        provider: Optional[PaymentProvider],
    ):
        self.uow = uow
        self.order_repo = order_repo
        self.settlement = settlement
        self.provider = provider

    async def execute(
        self, batch_size: int, now: Optional[datetime] = None
    ) -> Result[ExpiryResultDTO]:
        now = now or datetime.utcnow()
        result = ExpiryResultDTO()

        try:
            orders = await self.order_repo.claim_expired(now, batch_size)

            for order in orders:
                merchant_order_id = order.merchant_order_id
                try:
                    outcome = await self._expire(order, now)
                except (PaymentProviderError, AmountMismatch) as e:
                    logger.error(f"Failed to close expired order {merchant_order_id}: {e}")
                    result.failed.append(merchant_order_id)
                    continue

                if outcome == SettlementOutcome.SETTLED:
                    result.settled.append(merchant_order_id)
                elif outcome == SettlementOutcome.MARKED_CLOSED:
                    result.closed.append(merchant_order_id)

            await self.uow.commit()

            if result.closed or result.settled:
                logger.info(
                    f"Expiry sweep closed {len(result.closed)} orders, "
                    f"settled {len(result.settled)} paid orders"
                )

            return Return.ok(result)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Expiry sweep failed: {e}")
            return Return.err(
                Error(
                    code="EXPIRE_ORDERS_FAILED",
                    message="Failed to expire payment orders",
                    reason=str(e),
                )
            )

    async def _expire(self, order: PaymentOrder, now: datetime) -> SettlementOutcome:
        if self.provider is not None:
            try:
                await self.provider.close_order(order.merchant_order_id)
            except OrderAlreadyPaid:
                logger.info(f"Expired order {order.merchant_order_id} was paid, settling")
                provider_order = await self.provider.query_order(order.merchant_order_id)
                return await self.settlement.apply_locked(order, provider_order, "expiry_sweep")

        order.status = PaymentOrderStatus.CLOSED
        order.updated_at = now
        await self.order_repo.save(order)
        return SettlementOutcome.MARKED_CLOSED
