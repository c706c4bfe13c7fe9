"""Payment Order Repository Interface

Defines the contract for payment order persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from src.domain.payment_order import PaymentOrder


class PaymentOrderRepository(ABC):
    """
    Repository interface for PaymentOrder persistence

    Every state transition happens on a row loaded with for_update=True.
    """

    @abstractmethod
    async def create(self, order: PaymentOrder) -> PaymentOrder:
        """Persist a new order and return it with its generated ID"""
        pass

    @abstractmethod
    async def get_by_merchant_order_id(
        self, merchant_order_id: str, for_update: bool = False
    ) -> Optional[PaymentOrder]:
        """
        Retrieve order by merchant order number

        Args:
            merchant_order_id: Merchant order number
            for_update: If True, lock the row with SELECT FOR UPDATE
        """
        pass

    @abstractmethod
    async def claim_expired(self, now: datetime, batch_size: int) -> list[PaymentOrder]:
        """
        Lock up to batch_size pending orders whose expire_at has passed,
        skipping rows locked by a concurrent transaction
        """
        pass

    @abstractmethod
    async def save(self, order: PaymentOrder) -> PaymentOrder:
        """Flush changes of a loaded order"""
        pass
