"""HandlePaymentNotification Use Case

Webhook settlement path: verify, decrypt, then run the guarded
settlement transition.
"""

import logging
from typing import Mapping
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.order_settlement import OrderSettlement
from src.app.services.payment_provider import PaymentProvider
from src.domain.errors import (
    AmountMismatch,
    OrderNotFound,
    OrderNotPending,
    ReplaySuspected,
    SignatureVerificationFailed,
)
from .dtos import NotificationResultDTO

logger = logging.getLogger(__name__)


class HandlePaymentNotification:
    """
    Use Case: Settle an order from a provider notification

    Business Rules:
    1. Stale timestamps are rejected (replay window)
    2. Certificate serial and signature must verify over the raw body
    3. A repeated delivery for a settled order succeeds without re-crediting
    4. Amount mismatches are rejected without any state change
    """

    def __init__(
        self,
        uow: UnitOfWork,
        settlement: OrderSettlement,
        provider: PaymentProvider,
    ):
        self.uow = uow
        self.settlement = settlement
        self.provider = provider

    async def execute(
        self, headers: Mapping[str, str], body: str
    ) -> Result[NotificationResultDTO]:
        try:
            provider_order = self.provider.parse_notification(headers, body)
        except ReplaySuspected as e:
            logger.error(f"Rejected payment notification, replay suspected: {e}")
            return Return.err(
                Error(code="REPLAY_SUSPECTED", message="Notification rejected", reason=str(e))
            )
        except SignatureVerificationFailed as e:
            logger.error(f"Rejected payment notification, manual review required: {e}")
            return Return.err(
                Error(
                    code="SIGNATURE_VERIFICATION_FAILED",
                    message="Notification rejected",
                    reason=str(e),
                )
            )

        merchant_order_id = provider_order.merchant_order_id

        try:
            outcome = await self.settlement.apply(merchant_order_id, provider_order, "webhook")
            await self.uow.commit()

            return Return.ok(
                NotificationResultDTO(merchant_order_id=merchant_order_id, outcome=outcome.value)
            )

        except OrderNotFound as e:
            await self.uow.rollback()
            logger.error(f"Payment notification for unknown order: {e}")
            return Return.err(Error(code="ORDER_NOT_FOUND", message=str(e)))
        except OrderNotPending as e:
            await self.uow.rollback()
            return Return.err(Error(code="ORDER_NOT_PENDING", message=str(e)))
        except AmountMismatch as e:
            await self.uow.rollback()
            return Return.err(Error(code="AMOUNT_MISMATCH", message=str(e)))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to settle order {merchant_order_id} from notification: {e}")
            return Return.err(
                Error(
                    code="HANDLE_NOTIFICATION_FAILED",
                    message="Failed to handle payment notification",
                    reason=str(e),
                )
            )
