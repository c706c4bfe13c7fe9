"""Payment Order Domain Entity

One row per recharge attempt. State machine:
pending -> success | failed | closed; terminal states never change.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, String, Text
from src.domain.base import BaseModel, IdType


class PaymentOrderStatus(str, Enum):
    """Payment order states"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CLOSED = "closed"


class PaymentOrder(BaseModel, table=True):
    """
    Payment Order - Third-party recharge reconciled against the ledger

    Domain Rules:
    - merchant_order_id is globally unique
    - success is reached at most once; linked_ledger_entry_id is set exactly then
    - closing is only allowed while pending
    """

    __tablename__ = "payment_orders"
    __table_args__ = (
        CheckConstraint('amount > 0', name='payment_order_amount_positive'),
        Index('ix_payment_orders_status_expire_at', 'status', 'expire_at'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique order identifier (auto-increment)"
    )

    account_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("accounts.id"), nullable=False, index=True),
        description="Account credited on settlement"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Order amount in minor units"
    )

    provider: str = Field(
        sa_column=Column(String(32), nullable=False),
        description="Payment provider name"
    )

    merchant_order_id: str = Field(
        sa_column=Column(String(64), nullable=False, unique=True, index=True),
        description="Merchant order number sent to the provider (unique)"
    )

    external_transaction_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Provider transaction id, known once settled"
    )

    credential: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Payment credential handed to the payer (QR code URL)"
    )

    status: PaymentOrderStatus = Field(
        default=PaymentOrderStatus.PENDING,
        description="Order state"
    )

    expire_at: datetime = Field(
        description="Instant after which the expiry sweep closes the order"
    )

    settled_at: Optional[datetime] = Field(
        default=None,
        description="Settlement timestamp"
    )

    linked_ledger_entry_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True),
        description="order_settlement ledger entry, set exactly once"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Order creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last state change"
    )
