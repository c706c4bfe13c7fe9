"""GetPaymentOrderStatus Use Case

Status read with the polling fallback: a pending order is checked at the
provider and settled through the same guarded transition as the webhook.
"""

import logging
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.order_settlement import OrderSettlement
from src.app.services.payment_provider import PaymentProvider, ProviderTradeState
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.errors import DomainError, PaymentProviderError
from src.domain.payment_order import PaymentOrderStatus
from .dtos import PaymentOrderDTO

logger = logging.getLogger(__name__)

UNCHANGED_TRADE_STATES = frozenset({ProviderTradeState.NOTPAY, ProviderTradeState.USERPAYING})


class GetPaymentOrderStatus:
    """
    Use Case: Poll a payment order

    Provider and settlement failures never surface to the caller; the
    local status is returned instead and the failure is logged.
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

    async def execute(self, merchant_order_id: str) -> Result[PaymentOrderDTO]:
        order = await self.order_repo.get_by_merchant_order_id(merchant_order_id)

        if not order:
            return Return.err(
                Error(
                    code="ORDER_NOT_FOUND",
                    message=f"Payment order {merchant_order_id} not found",
                )
            )

        local = PaymentOrderDTO.from_order(order)
        if order.status != PaymentOrderStatus.PENDING or self.provider is None:
            return Return.ok(local)

        try:
            provider_order = await self.provider.query_order(merchant_order_id)
        except PaymentProviderError as e:
            logger.warning(f"Polling order {merchant_order_id} failed: {e}")
            return Return.ok(local)

        if provider_order.trade_state in UNCHANGED_TRADE_STATES:
            return Return.ok(local)

        try:
            locked = await self.order_repo.get_by_merchant_order_id(
                merchant_order_id, for_update=True
            )
            outcome = await self.settlement.apply_locked(locked, provider_order, "polling")
            refreshed = PaymentOrderDTO.from_order(locked)
            await self.uow.commit()

            logger.info(f"Polled order {merchant_order_id}: {outcome.value}")
            return Return.ok(refreshed)

        except DomainError as e:
            await self.uow.rollback()
            logger.error(f"Polling settlement of {merchant_order_id} rejected: {e}")
            return Return.ok(local)
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Polling settlement of {merchant_order_id} failed: {e}")
            return Return.ok(local)
