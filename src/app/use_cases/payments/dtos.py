"""Data Transfer Objects for Payment Order Use Cases"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.payment_order import PaymentOrder


class CreatePaymentOrderCommandDTO(BaseModel):
    """
    Command DTO for creating a recharge order

    amount is in minor units (100 = 1 CNY).
    """

    account_id: int = Field(
        ...,
        description="Account credited on settlement"
    )

    amount: int = Field(
        ...,
        gt=0,
        description="Recharge amount in minor units"
    )

    description: str = Field(
        default="Account recharge",
        max_length=127,
        description="Order description shown to the payer"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": 1,
                "amount": 10000,
                "description": "Account recharge",
            }
        }


class PaymentOrderDTO(BaseModel):
    merchant_order_id: str
    account_id: int
    amount: int
    provider: str
    status: str
    credential: Optional[str] = None
    expire_at: datetime
    settled_at: Optional[datetime] = None
    external_transaction_id: Optional[str] = None
    linked_ledger_entry_id: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_order(cls, order: PaymentOrder) -> "PaymentOrderDTO":
        return cls(
            merchant_order_id=order.merchant_order_id,
            account_id=order.account_id,
            amount=order.amount,
            provider=order.provider,
            status=order.status.value,
            credential=order.credential,
            expire_at=order.expire_at,
            settled_at=order.settled_at,
            external_transaction_id=order.external_transaction_id,
            linked_ledger_entry_id=order.linked_ledger_entry_id,
            created_at=order.created_at,
        )


class NotificationResultDTO(BaseModel):
    merchant_order_id: str
    outcome: str


class ExpiryResultDTO(BaseModel):
    closed: list[str] = Field(default_factory=list)
    settled: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
