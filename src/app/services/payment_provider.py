"""Payment Provider Interface

Defines the contract for a third-party payment provider (native QR code
payments): order creation, status query, close and inbound notifications.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional
from pydantic import BaseModel


class ProviderTradeState(str, Enum):
    """Order state as reported by the provider"""
    SUCCESS = "SUCCESS"
    REFUND = "REFUND"
    NOTPAY = "NOTPAY"
    CLOSED = "CLOSED"
    REVOKED = "REVOKED"
    USERPAYING = "USERPAYING"
    PAYERROR = "PAYERROR"


class ProviderOrder(BaseModel):
    """Provider view of an order, from a query or a verified notification"""

    merchant_order_id: str
    trade_state: ProviderTradeState
    transaction_id: Optional[str] = None
    amount_total: Optional[int] = None
    success_time: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.trade_state == ProviderTradeState.SUCCESS


class PaymentProvider(ABC):
    """
    Abstract payment provider

    Implementations raise PaymentProviderError (and its subclasses) for
    API failures, SignatureVerificationFailed / ReplaySuspected for
    rejected notifications.
    """

    name: str = "unknown"

    @abstractmethod
    async def create_order(
        self, merchant_order_id: str, amount: int, description: str, expire_at: datetime
    ) -> str:
        """
        Create a provider order

        Returns:
            Payment credential (QR code URL) handed to the payer
        """
        pass

    @abstractmethod
    async def query_order(self, merchant_order_id: str) -> ProviderOrder:
        pass

    @abstractmethod
    async def close_order(self, merchant_order_id: str) -> None:
        """
        Close an unpaid order; already-closed orders are not an error

        Raises:
            OrderAlreadyPaid: the payer completed the payment first
        """
        pass

    @abstractmethod
    def parse_notification(self, headers: Mapping[str, str], body: str) -> ProviderOrder:
        """
        Verify and decrypt an inbound payment notification

        Args:
            headers: Request headers (case-insensitive lookup is the caller's job)
            body: Raw request body, exactly as received

        Raises:
            ReplaySuspected: timestamp outside the accepted window
            SignatureVerificationFailed: serial, signature or decryption check failed
        """
        pass
