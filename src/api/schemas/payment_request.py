"""Request schemas for the Payments and Accounts API"""

from pydantic import BaseModel, Field


class CreatePaymentOrderRequestSchema(BaseModel):
    """
    Request schema for creating a recharge order

    Used for POST /payments/orders endpoint. amount is in minor units.
    """

    account_id: int = Field(..., gt=0, description="Account to credit")
    amount: int = Field(..., gt=0, description="Recharge amount in minor units (100 = 1 CNY)")
    description: str = Field(default="Account recharge", max_length=127)

    class Config:
        json_schema_extra = {
            "example": {"account_id": 1, "amount": 10000}
        }


class OpenAccountRequestSchema(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    initial_balance: int = Field(default=0, ge=0)
