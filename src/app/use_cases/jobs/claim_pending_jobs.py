"""ClaimPendingJobs Use Case

Moves the oldest pending jobs to processing with a skip-locked claim.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.job_repository import JobRepository
from .dtos import ClaimResultDTO

logger = logging.getLogger(__name__)


class ClaimPendingJobs:
    """
    Use Case: Claim a batch of pending jobs

    Concurrent claimers (scheduler replicas) never receive the same job:
    rows locked by another claim transaction are skipped, and the
    pending -> processing update commits with the claim.
    """

    def __init__(self, uow: UnitOfWork, job_repo: JobRepository):
        self.uow = uow
        self.job_repo = job_repo

    async def execute(self, batch_size: int) -> Result[ClaimResultDTO]:
        if batch_size <= 0:
            return Return.ok(ClaimResultDTO())

        try:
            jobs = await self.job_repo.claim_pending(batch_size)
            await self.uow.commit()

            job_ids = [job.id for job in jobs]
            if job_ids:
                logger.info(f"Claimed {len(job_ids)} pending jobs: {job_ids}")

            return Return.ok(ClaimResultDTO(job_ids=job_ids))

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to claim pending jobs: {e}")
            return Return.err(
                Error(
                    code="CLAIM_JOBS_FAILED",
                    message="Failed to claim pending jobs",
                    reason=str(e),
                )
            )
