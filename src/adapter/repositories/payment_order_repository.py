"""SQLAlchemy implementation of PaymentOrderRepository

Provides persistence for PaymentOrder entities. The expiry sweep claims
rows with FOR UPDATE SKIP LOCKED, like the job scheduler.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.payment_order import PaymentOrder, PaymentOrderStatus


class SqlAlchemyPaymentOrderRepository(PaymentOrderRepository):
    """
    SQLAlchemy implementation of PaymentOrderRepository

    Features:
    - Row locks around every state transition
    - Skip-locked claim of expired pending orders
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: PaymentOrder) -> PaymentOrder:
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get_by_merchant_order_id(
        self, merchant_order_id: str, for_update: bool = False
    ) -> Optional[PaymentOrder]:
        stmt = select(PaymentOrder).where(PaymentOrder.merchant_order_id == merchant_order_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def claim_expired(self, now: datetime, batch_size: int) -> list[PaymentOrder]:
        stmt = (
            select(PaymentOrder)
            .where(PaymentOrder.status == PaymentOrderStatus.PENDING)
            .where(PaymentOrder.expire_at < now)
            .order_by(PaymentOrder.expire_at, PaymentOrder.id)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, order: PaymentOrder) -> PaymentOrder:
        self.session.add(order)
        await self.session.flush()
        return order
