"""ClosePaymentOrder Use Case

User cancellation of a pending order.
"""

import logging
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.order_settlement import OrderSettlement
from src.app.services.payment_provider import PaymentProvider
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.errors import OrderAlreadyPaid, PaymentProviderError
from src.domain.payment_order import PaymentOrderStatus
from .dtos import PaymentOrderDTO

logger = logging.getLogger(__name__)


class ClosePaymentOrder:
    """
    Use Case: Close a payment order on user request

    Business Rules:
    1. Only pending orders can be closed
    2. The provider order is closed first; if the payer already paid, the
       order is settled instead of closed
    """

    def __init__(
        self,
        uow: UnitOfWork,
        order_repo: PaymentOrderRepository,
        settlement: OrderSettlement,
        provider: PaymentProvider,
    ):
        self.uow = uow
        self.order_repo = order_repo
        self.settlement = settlement
        self.provider = provider

    async def execute(self, merchant_order_id: str) -> Result[PaymentOrderDTO]:
        try:
            order = await self.order_repo.get_by_merchant_order_id(
                merchant_order_id, for_update=True
            )

            if not order:
                return Return.err(
                    Error(
                        code="ORDER_NOT_FOUND",
                        message=f"Payment order {merchant_order_id} not found",
                    )
                )

            if order.status != PaymentOrderStatus.PENDING:
                status = order.status.value
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="ORDER_NOT_PENDING",
                        message=f"Payment order {merchant_order_id} is {status}, not pending",
                    )
                )

            try:
                await self.provider.close_order(merchant_order_id)
            except OrderAlreadyPaid:
                logger.info(f"Order {merchant_order_id} was paid before close, settling")
                provider_order = await self.provider.query_order(merchant_order_id)
                await self.settlement.apply_locked(order, provider_order, "user_close")
            else:
                order.status = PaymentOrderStatus.CLOSED
                order.updated_at = datetime.utcnow()
                await self.order_repo.save(order)
                logger.info(f"Closed payment order {merchant_order_id} on user request")

            response = PaymentOrderDTO.from_order(order)
            await self.uow.commit()
            return Return.ok(response)

        except PaymentProviderError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="PROVIDER_ERROR",
                    message="Payment provider is unavailable",
                    reason=str(e),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CLOSE_PAYMENT_ORDER_FAILED",
                    message="Failed to close payment order",
                    reason=str(e),
                )
            )
