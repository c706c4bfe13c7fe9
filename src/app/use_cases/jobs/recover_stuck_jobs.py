"""RecoverStuckJobs Use Case

Returns processing jobs with a stale heartbeat to the pending pool.
"""

import logging
from datetime import datetime, timedelta
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.job_repository import JobRepository
from .dtos import RecoveryResultDTO

logger = logging.getLogger(__name__)


class RecoverStuckJobs:
    """
    Use Case: Recovery sweep

    A job whose updated_at is older than the timeout lost its worker
    (crash, or a crash before the first heartbeat). The reset uses the
    same skip-locked pattern as the claim, so a worker still holding the
    row is never overridden.
    """

    def __init__(self, uow: UnitOfWork, job_repo: JobRepository):
        self.uow = uow
        self.job_repo = job_repo

    async def execute(self, timeout_minutes: int) -> Result[RecoveryResultDTO]:
        cutoff = datetime.utcnow() - timedelta(minutes=timeout_minutes)

        try:
            jobs = await self.job_repo.reset_stale(cutoff)
            await self.uow.commit()

            job_ids = [job.id for job in jobs]
            if job_ids:
                logger.warning(
                    f"Recovered {len(job_ids)} stuck jobs (no heartbeat since {cutoff.isoformat()}): "
                    f"{job_ids}"
                )

            return Return.ok(RecoveryResultDTO(job_ids=job_ids, cutoff=cutoff))

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to recover stuck jobs: {e}")
            return Return.err(
                Error(
                    code="RECOVER_JOBS_FAILED",
                    message="Failed to recover stuck jobs",
                    reason=str(e),
                )
            )
