"""CreatePaymentOrder Use Case

Opens a recharge order at the payment provider and records it as pending.
"""

import logging
import uuid
from datetime import datetime, timedelta
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_provider import PaymentProvider
from src.app.repositories.account_repository import AccountRepository
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.errors import PaymentProviderError
from src.domain.payment_order import PaymentOrder, PaymentOrderStatus
from .dtos import CreatePaymentOrderCommandDTO, PaymentOrderDTO

logger = logging.getLogger(__name__)


def generate_merchant_order_id(now: datetime) -> str:
    """32 characters: UTC timestamp followed by 18 random hex digits"""
    return f"{now:%Y%m%d%H%M%S}{uuid.uuid4().hex[:18]}"


class CreatePaymentOrder:
    """
    Use Case: Create a recharge order

    Business Rules:
    1. amount within [min_amount, max_amount]
    2. The account must exist
    3. Merchant order ids are globally unique
    4. Nothing is stored when the provider rejects the order

    Flow:
    1. Validate amount and account
    2. Create the order at the provider (credential = QR code URL)
    3. Insert the order as pending with its expiry
    4. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: AccountRepository,
        order_repo: PaymentOrderRepository,
        provider: PaymentProvider,
        min_amount: int,
        max_amount: int,
        expire_minutes: int,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.order_repo = order_repo
        self.provider = provider
        self.min_amount = min_amount
        self.max_amount = max_amount
        self.expire_minutes = expire_minutes

    async def execute(self, command: CreatePaymentOrderCommandDTO) -> Result[PaymentOrderDTO]:
        if not self.min_amount <= command.amount <= self.max_amount:
            return Return.err(
                Error(
                    code="INVALID_AMOUNT",
                    message=f"Amount must be between {self.min_amount} and {self.max_amount}",
                    reason=f"amount={command.amount}",
                )
            )

        try:
            account = await self.account_repo.get_by_id(command.account_id)
            if not account:
                return Return.err(
                    Error(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Account {command.account_id} not found",
                    )
                )

            now = datetime.utcnow()
            merchant_order_id = generate_merchant_order_id(now)
            expire_at = now + timedelta(minutes=self.expire_minutes)

            credential = await self.provider.create_order(
                merchant_order_id, command.amount, command.description, expire_at
            )

            order = await self.order_repo.create(
                PaymentOrder(
                    account_id=command.account_id,
                    amount=command.amount,
                    provider=self.provider.name,
                    merchant_order_id=merchant_order_id,
                    credential=credential,
                    status=PaymentOrderStatus.PENDING,
                    expire_at=expire_at,
                )
            )
            await self.uow.commit()

            logger.info(
                f"Created payment order {merchant_order_id} for account {command.account_id}: "
                f"amount={command.amount}, expires {expire_at.isoformat()}"
            )
            return Return.ok(PaymentOrderDTO.from_order(order))

        except PaymentProviderError as e:
            await self.uow.rollback()
            logger.error(f"Provider rejected order for account {command.account_id}: {e}")
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
                    code="CREATE_PAYMENT_ORDER_FAILED",
                    message="Failed to create payment order",
                    reason=str(e),
                )
            )
