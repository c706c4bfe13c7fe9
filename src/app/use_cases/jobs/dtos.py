"""Data Transfer Objects for Job Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from src.domain.details import GenerationOptions, UnitError


class CreateJobCommandDTO(BaseModel):
    """
    Command DTO for creating a generation job

    The job is charged expected_unit_count * unit_price up front.
    """

    account_id: int = Field(
        ...,
        description="Account to charge"
    )

    prompt: str = Field(
        ...,
        min_length=1,
        description="User prompt"
    )

    template_prompt: Optional[str] = Field(
        default=None,
        description="Template with a {{ prompt }} placeholder"
    )

    reference_image_urls: list[str] = Field(
        default_factory=list,
        description="Reference images for image-to-image generation"
    )

    size: str = Field(
        default="2K",
        description="Output size, e.g. 2K or 2048x2048"
    )

    batch_count: int = Field(
        default=1,
        ge=1,
        le=15,
        description="Number of generation calls"
    )

    expected_unit_count: int = Field(
        ...,
        gt=0,
        description="Billed number of images"
    )

    unit_price: int = Field(
        ...,
        gt=0,
        description="Price per image in minor units"
    )

    options: GenerationOptions = Field(
        default_factory=GenerationOptions,
        description="Generation options forwarded to every call"
    )

    @model_validator(mode="after")
    def check_units_cover_batch(self):
        if self.expected_unit_count < self.batch_count:
            raise ValueError("expected_unit_count must be at least batch_count")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": 1,
                "prompt": "a lighthouse at dusk, watercolor",
                "size": "2K",
                "batch_count": 4,
                "expected_unit_count": 4,
                "unit_price": 20,
            }
        }


class CreateJobResponseDTO(BaseModel):
    job_id: int
    account_id: int
    status: str
    expected_unit_count: int
    charged_amount: int
    balance_after: int
    created_at: datetime


class JobStatusDTO(BaseModel):
    """
    Response DTO for job status

    error_summary and unit_errors are set for partial_success and failed jobs.
    """

    job_id: int
    account_id: int
    status: str
    batch_count: int
    expected_unit_count: int
    actual_unit_count: int
    generated_urls: list[str] = Field(default_factory=list)
    error_summary: Optional[str] = None
    unit_errors: list[UnitError] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ClaimResultDTO(BaseModel):
    job_ids: list[int] = Field(default_factory=list)


class RecoveryResultDTO(BaseModel):
    job_ids: list[int] = Field(default_factory=list)
    cutoff: datetime


class CompleteJobCommandDTO(BaseModel):
    """
    Command DTO for settling a processed job

    generated_urls are the stored public URLs in request order; unit_errors
    aggregates generation and upload failures. failure_reason is set when
    processing aborted on an unexpected error.
    """

    job_id: int
    generated_urls: list[str] = Field(default_factory=list)
    unit_errors: list[UnitError] = Field(default_factory=list)
    failure_reason: Optional[str] = None


class CompleteJobResponseDTO(BaseModel):
    job_id: int
    status: str
    actual_unit_count: int
    expected_unit_count: int
    refunded_amount: int = 0
    error_summary: Optional[str] = None
