"""Get Job Status Use Case

Read-only view of a job's progress and per-unit errors.
"""

from libs.result import Result, Return, Error
from src.app.repositories.job_repository import JobRepository
from src.domain.details import JobErrorDetails
from src.domain.job import Job
from .dtos import JobStatusDTO


def to_status_dto(job: Job) -> JobStatusDTO:
    details = JobErrorDetails.model_validate(job.error_details) if job.error_details else None
    return JobStatusDTO(
        job_id=job.id,
        account_id=job.account_id,
        status=job.status.value,
        batch_count=job.batch_count,
        expected_unit_count=job.expected_unit_count,
        actual_unit_count=job.actual_unit_count,
        generated_urls=list(job.generated_urls or []),
        error_summary=details.summary if details else None,
        unit_errors=details.unit_errors if details else [],
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


class GetJobStatus:
    def __init__(self, job_repo: JobRepository):
        self.job_repo = job_repo

    async def execute(self, job_id: int) -> Result[JobStatusDTO]:
        """
        Errors:
            JOB_NOT_FOUND: No job with this id
        """
        job = await self.job_repo.get_by_id(job_id)

        if not job:
            return Return.err(
                Error(
                    code="JOB_NOT_FOUND",
                    message=f"Job {job_id} not found",
                )
            )

        return Return.ok(to_status_dto(job))
