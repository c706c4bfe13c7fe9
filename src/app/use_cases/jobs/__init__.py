"""Job lifecycle use cases"""
from .create_job import CreateJob
from .get_job_status import GetJobStatus
from .claim_pending_jobs import ClaimPendingJobs
from .recover_stuck_jobs import RecoverStuckJobs
from .complete_job import CompleteJob
from .dtos import (
    CreateJobCommandDTO,
    CreateJobResponseDTO,
    JobStatusDTO,
    ClaimResultDTO,
    RecoveryResultDTO,
    CompleteJobCommandDTO,
    CompleteJobResponseDTO,
)

__all__ = [
    "CreateJob",
    "GetJobStatus",
    "ClaimPendingJobs",
    "RecoverStuckJobs",
    "CompleteJob",
    "CreateJobCommandDTO",
    "CreateJobResponseDTO",
    "JobStatusDTO",
    "ClaimResultDTO",
    "RecoveryResultDTO",
    "CompleteJobCommandDTO",
    "CompleteJobResponseDTO",
]
