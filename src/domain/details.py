"""Typed metadata attached to jobs and ledger entries

Ledger entry details are a tagged union keyed by ``category``: one model
per ledger category instead of an open-ended dictionary.
"""

from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


class JobChargeDetails(BaseModel):
    category: Literal["job_charge"] = "job_charge"
    unit_price: int
    expected_unit_count: int


class JobRefundDetails(BaseModel):
    category: Literal["job_refund"] = "job_refund"
    unit_price: int
    expected_unit_count: int
    actual_unit_count: int
    full_refund: bool = False
    reason: str = ""


class OrderSettlementDetails(BaseModel):
    category: Literal["order_settlement"] = "order_settlement"
    provider: str
    merchant_order_id: str
    external_transaction_id: Optional[str] = None
    settled_via: Literal["webhook", "polling", "expiry_sweep", "user_close"]


LedgerEntryDetails = Annotated[
    Union[JobChargeDetails, JobRefundDetails, OrderSettlementDetails],
    Field(discriminator="category"),
]

_entry_details_adapter = TypeAdapter(LedgerEntryDetails)


def parse_entry_details(data: Optional[dict[str, Any]]) -> Optional[LedgerEntryDetails]:
    """Rebuild the typed details model from its stored JSON form"""
    if not data:
        return None
    return _entry_details_adapter.validate_python(data)


class GenerationOptions(BaseModel):
    """Options forwarded to the generation API for every unit of a job"""

    sequential_image_generation: Literal["auto", "disabled"] = "disabled"
    max_images: Optional[int] = Field(default=None, ge=1, le=15)
    watermark: bool = False


class UnitError(BaseModel):
    index: int
    stage: Literal["generation", "upload", "processing"]
    error: str
    attempts: int = 0
    url: Optional[str] = None


class JobErrorDetails(BaseModel):
    summary: str
    unit_errors: list[UnitError] = Field(default_factory=list)
