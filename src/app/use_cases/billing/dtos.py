"""Data Transfer Objects for Billing Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class OpenAccountCommandDTO(BaseModel):
    """
    Command DTO for opening an account

    One account per user; opening twice returns the existing account.
    """

    user_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Owning user identifier"
    )

    initial_balance: int = Field(
        default=0,
        ge=0,
        description="Opening balance in minor units"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_8f3a",
                "initial_balance": 0,
            }
        }


class AccountResponseDTO(BaseModel):
    account_id: int
    user_id: str
    balance: int
    created: bool = Field(
        default=True,
        description="False when the account already existed"
    )
    created_at: datetime


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for balance queries
    """

    account_id: int = Field(
        ...,
        description="Account identifier"
    )

    user_id: str = Field(
        ...,
        description="Owning user"
    )

    balance: int = Field(
        ...,
        description="Current balance in minor units"
    )

    last_updated: datetime = Field(
        ...,
        description="Last balance update timestamp"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": 1,
                "user_id": "user_8f3a",
                "balance": 920,
                "last_updated": "2025-01-15T10:30:00Z",
            }
        }


class LedgerEntryDTO(BaseModel):
    id: int
    category: str
    amount: int = Field(
        ...,
        description="Signed amount: negative for charges, positive for credits"
    )
    balance_before: int
    balance_after: int
    job_id: Optional[int] = None
    order_id: Optional[int] = None
    details: Optional[dict[str, Any]] = None
    created_at: datetime


class ListLedgerEntriesResponseDTO(BaseModel):
    entries: list[LedgerEntryDTO]
    total: int
    limit: int
    offset: int


class LedgerDiscrepancyDTO(BaseModel):
    """
    One inconsistency found by reconciliation

    kind is one of:
    - chain_break: balance_before differs from the previous balance_after
    - amount_mismatch: snapshots do not differ by the entry amount
    - balance_drift: account balance differs from the last balance_after
    """

    account_id: int
    kind: str
    entry_id: Optional[int] = None
    expected: int
    actual: int


class ReconciliationResultDTO(BaseModel):
    total_accounts_checked: int
    discrepancies_found: int
    discrepancies: list[LedgerDiscrepancyDTO] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int
