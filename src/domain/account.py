"""Account Domain Entity

One account per user. The balance is kept in integer minor currency units
and is only mutated through the financial ledger under a row lock.
"""

from datetime import datetime
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, CheckConstraint
from src.domain.base import BaseModel, IdType


class Account(BaseModel, table=True):
    """
    Account - Holds the spendable balance of a user

    Domain Rules:
    - One account per user (user_id is unique)
    - Balance must be non-negative
    - Balance updates only through LedgerEntry rows
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint('balance >= 0', name='account_balance_non_negative'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique account identifier (auto-increment)"
    )

    user_id: str = Field(
        index=True,
        unique=True,
        description="Owning user (unique - one account per user)"
    )

    balance: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Current balance in minor units (must be >= 0)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )
