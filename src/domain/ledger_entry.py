"""Ledger Entry Domain Entity

Immutable append-only record of every balance mutation. For one account,
entries ordered by creation form a chain: each balance_after equals the
next entry's balance_before.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, JSON
from src.domain.base import BaseModel, IdType


class LedgerCategory(str, Enum):
    """Ledger entry categories"""
    JOB_CHARGE = "job_charge"              # Debit at job creation
    JOB_REFUND = "job_refund"              # Credit for units not delivered
    ORDER_SETTLEMENT = "order_settlement"  # Credit from a paid recharge order


CREDIT_CATEGORIES = frozenset({LedgerCategory.JOB_REFUND, LedgerCategory.ORDER_SETTLEMENT})


class LedgerEntry(BaseModel, table=True):
    """
    Ledger Entry - Immutable audit trail of balance mutations

    Domain Rules:
    - Entries are immutable (append-only)
    - amount is always positive; category decides the direction
    - References at most one job or one payment order, never both
    - idempotency_key is unique (one charge/refund per job, one settlement per order)
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint('amount > 0', name='ledger_amount_positive'),
        CheckConstraint('balance_after >= 0', name='ledger_balance_after_non_negative'),
        CheckConstraint(
            'job_id IS NULL OR order_id IS NULL', name='ledger_single_reference'
        ),
        Index('ix_ledger_entries_account_created', 'account_id', 'created_at'),
        Index('ix_ledger_entries_job_category', 'job_id', 'category'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique entry identifier (auto-increment, creation order)"
    )

    account_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("accounts.id"), nullable=False),
        description="Account whose balance changed"
    )

    category: LedgerCategory = Field(
        description="Kind of mutation (job_charge, job_refund, order_settlement)"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Absolute amount in minor units"
    )

    balance_before: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Account balance before the mutation"
    )

    balance_after: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Account balance after the mutation"
    )

    job_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, ForeignKey("jobs.id"), nullable=True),
        description="Job charged or refunded"
    )

    order_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, ForeignKey("payment_orders.id"), nullable=True),
        description="Payment order settled"
    )

    idempotency_key: str = Field(
        unique=True,
        index=True,
        description="category:reference id, e.g. job_refund:42"
    )

    details: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Serialized LedgerEntryDetails for this category"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp (immutable)"
    )

    @property
    def signed_amount(self) -> int:
        if self.category in CREDIT_CATEGORIES:
            return self.amount
        return -self.amount
