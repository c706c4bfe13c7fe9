"""CompleteJob Use Case

Settles a processed job: final status, delivered units, error aggregate
and refund in one transaction.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.financial_ledger import FinancialLedger
from src.app.repositories.job_repository import JobRepository
from src.domain.details import JobErrorDetails, UnitError
from src.domain.job import Job, JobStatus, classify_job_status
from .dtos import CompleteJobCommandDTO, CompleteJobResponseDTO

logger = logging.getLogger(__name__)


def summarize_errors(
    status: JobStatus,
    actual_unit_count: int,
    unit_errors: list[UnitError],
    failure_reason: Optional[str] = None,
) -> Optional[JobErrorDetails]:
    """Error aggregate stored on the job; None for a clean success"""
    if not unit_errors and not failure_reason and status == JobStatus.SUCCESS:
        return None

    if failure_reason:
        summary = f"Processing failed: {failure_reason}"
    elif status == JobStatus.FAILED:
        summary = "All units failed"
    else:
        failed = len(unit_errors)
        summary = f"{failed} of {actual_unit_count + failed} units failed"

    return JobErrorDetails(summary=summary, unit_errors=unit_errors)


class CompleteJob:
    """
    Use Case: Settle a job after processing

    Business Rules:
    1. Only processing jobs can be settled
    2. actual_unit_count = stored units, capped at expected_unit_count
    3. Status: failed (0 units), partial_success (< expected), success
    4. Refund of undelivered units commits with the status update

    Flow:
    1. Lock job row
    2. Classify and write final state
    3. Refund through the financial ledger
    4. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        job_repo: JobRepository,
        ledger: FinancialLedger,
    ):
        self.uow = uow
        self.job_repo = job_repo
        self.ledger = ledger

    async def execute(self, command: CompleteJobCommandDTO) -> Result[CompleteJobResponseDTO]:
        try:
            job = await self.job_repo.get_by_id(command.job_id, for_update=True)

            if not job:
                return Return.err(
                    Error(
                        code="JOB_NOT_FOUND",
                        message=f"Job {command.job_id} not found",
                    )
                )

            if job.status != JobStatus.PROCESSING:
                logger.warning(f"Job {job.id} is {job.status.value}, not settling")
                return Return.err(
                    Error(
                        code="JOB_NOT_PROCESSING",
                        message=f"Job {job.id} is {job.status.value}, not processing",
                    )
                )

            generated_urls = list(command.generated_urls)
            actual = min(len(generated_urls), job.expected_unit_count)
            status = classify_job_status(actual, job.expected_unit_count)
            details = summarize_errors(
                status, actual, list(command.unit_errors), command.failure_reason
            )

            job.status = status
            job.actual_unit_count = actual
            job.generated_urls = generated_urls
            job.error_details = details.model_dump(mode="json") if details else None
            job.updated_at = datetime.utcnow()
            await self.job_repo.save(job)

            refund = await self.ledger.refund(job, reason=details.summary if details else "")

            await self.uow.commit()

            logger.info(
                f"Job {job.id} completed: {status.value} "
                f"({actual}/{job.expected_unit_count} units)"
            )

            return Return.ok(self._to_response_dto(job, refund.amount if refund else 0, details))

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to complete job {command.job_id}: {e}")
            return Return.err(
                Error(
                    code="COMPLETE_JOB_FAILED",
                    message="Failed to complete job",
                    reason=str(e),
                )
            )

    def _to_response_dto(
        self, job: Job, refunded_amount: int, details: Optional[JobErrorDetails]
    ) -> CompleteJobResponseDTO:
        return CompleteJobResponseDTO(
            job_id=job.id,
            status=job.status.value,
            actual_unit_count=job.actual_unit_count,
            expected_unit_count=job.expected_unit_count,
            refunded_amount=refunded_amount,
            error_summary=details.summary if details else None,
        )
