"""Request schemas for the Jobs API"""

from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class GenerationOptionsSchema(BaseModel):
    sequential_image_generation: Literal["auto", "disabled"] = "disabled"
    max_images: Optional[int] = Field(default=None, ge=1, le=15)
    watermark: bool = False


class CreateJobRequestSchema(BaseModel):
    """
    Request schema for creating a generation job

    Used for POST /jobs endpoint.
    """

    account_id: int = Field(
        ...,
        gt=0,
        description="Account to charge"
    )

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="User prompt (required, non-empty)"
    )

    template_prompt: Optional[str] = Field(
        default=None,
        description="Template containing a {{ prompt }} placeholder"
    )

    reference_image_urls: list[str] = Field(
        default_factory=list,
        max_length=10,
        description="Reference images (http/https URLs)"
    )

    size: str = Field(
        default="2K",
        min_length=1,
        max_length=32,
        description="Output size"
    )

    batch_count: int = Field(
        default=1,
        ge=1,
        le=15,
        description="Number of generation calls"
    )

    expected_unit_count: Optional[int] = Field(
        default=None,
        gt=0,
        description="Billed number of images (defaults to batch_count)"
    )

    unit_price: int = Field(
        ...,
        gt=0,
        description="Price per image in minor units"
    )

    options: GenerationOptionsSchema = Field(default_factory=GenerationOptionsSchema)

    @field_validator("reference_image_urls")
    @classmethod
    def validate_urls(cls, v):
        for url in v:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Invalid reference image URL: {url}")
        return v

    @model_validator(mode="after")
    def check_units_cover_batch(self):
        if self.expected_unit_count is not None and self.expected_unit_count < self.batch_count:
            raise ValueError("expected_unit_count must be at least batch_count")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": 1,
                "prompt": "a lighthouse at dusk, watercolor",
                "batch_count": 4,
                "unit_price": 20,
            }
        }
