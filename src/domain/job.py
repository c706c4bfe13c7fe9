"""Job Domain Entity

A pre-paid generation request. Jobs are created ``pending``, claimed into
``processing`` by the task scheduler only, and settled into one of the
terminal states by a worker.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, JSON, String, Text
from src.domain.base import BaseModel, IdType


class JobStatus(str, Enum):
    """Job lifecycle states"""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


TERMINAL_JOB_STATUSES = frozenset(
    {JobStatus.SUCCESS, JobStatus.PARTIAL_SUCCESS, JobStatus.FAILED}
)


def classify_job_status(actual_unit_count: int, expected_unit_count: int) -> JobStatus:
    """Final status from the number of units that were generated and stored"""
    if actual_unit_count <= 0:
        return JobStatus.FAILED
    if actual_unit_count < expected_unit_count:
        return JobStatus.PARTIAL_SUCCESS
    return JobStatus.SUCCESS


class Job(BaseModel, table=True):
    """
    Job - Asynchronous image generation request

    Domain Rules:
    - expected_unit_count is the billed quantity and never changes
    - actual_unit_count is written once, when the job is settled
    - updated_at doubles as the worker heartbeat
    - processing -> pending happens only through the recovery sweep
    """

    __tablename__ = "jobs"
    __table_args__ = (
        CheckConstraint('expected_unit_count > 0', name='job_expected_units_positive'),
        CheckConstraint('batch_count > 0', name='job_batch_count_positive'),
        CheckConstraint('actual_unit_count >= 0', name='job_actual_units_non_negative'),
        Index('ix_jobs_status_created_at', 'status', 'created_at'),
        Index('ix_jobs_status_updated_at', 'status', 'updated_at'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique job identifier (auto-increment)"
    )

    account_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("accounts.id"), nullable=False, index=True),
        description="Owning account"
    )

    status: JobStatus = Field(
        default=JobStatus.PENDING,
        description="Lifecycle state"
    )

    prompt: str = Field(
        sa_column=Column(Text, nullable=False),
        description="User prompt"
    )

    template_prompt: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Optional template with a {{ prompt }} placeholder"
    )

    reference_image_urls: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Reference images for image-to-image generation"
    )

    size: str = Field(
        default="2K",
        sa_column=Column(String(32), nullable=False),
        description="Requested output size"
    )

    generation_options: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Serialized GenerationOptions"
    )

    batch_count: int = Field(
        default=1,
        description="Number of generation calls requested"
    )

    expected_unit_count: int = Field(
        description="Billed quantity, fixed at creation"
    )

    actual_unit_count: int = Field(
        default=0,
        description="Units generated and stored, filled at completion"
    )

    generated_urls: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Public URLs of stored units, in request order"
    )

    error_details: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Serialized JobErrorDetails for partial/failed jobs"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Job creation timestamp (claim order)"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last state change or heartbeat"
    )
