"""SQLAlchemy implementation of JobRepository

The claim and recovery queries rely on FOR UPDATE SKIP LOCKED, so any
number of scheduler replicas can share the jobs table without another
coordination mechanism. Dialects without row locks (SQLite) ignore the
locking clause.
"""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import DBAPIError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.job_repository import JobRepository
from src.domain.errors import LockContention
from src.domain.job import Job, JobStatus

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for "could not obtain lock on row"
LOCK_NOT_AVAILABLE = "55P03"


def is_lock_not_available(error: DBAPIError) -> bool:
    """True if a NOWAIT lock attempt failed because the row is already locked"""
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == LOCK_NOT_AVAILABLE:
        return True
    message = str(orig or error).lower()
    return "could not obtain lock" in message or "lock not available" in message


class SqlAlchemyJobRepository(JobRepository):
    """
    SQLAlchemy implementation of JobRepository

    Features:
    - Skip-locked batch claims (pending -> processing)
    - Skip-locked recovery of stale processing jobs
    - NOWAIT re-validation lock for workers
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, job: Job) -> Job:
        self.session.add(job)
        await self.session.flush()
        await self.session.refresh(job)
        return job

    async def get_by_id(self, job_id: int, for_update: bool = False) -> Optional[Job]:
        stmt = select(Job).where(Job.id == job_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def claim_pending(self, batch_size: int) -> list[Job]:
        """
        Claim the oldest pending jobs for this scheduler

        Args:
            batch_size: Maximum number of jobs to claim

        Returns:
            Jobs moved to processing (uncommitted; caller commits)
        """
        stmt = (
            select(Job)
            .where(Job.status == JobStatus.PENDING)
            .order_by(Job.created_at, Job.id)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        jobs = list(result.scalars().all())

        now = datetime.utcnow()
        for job in jobs:
            job.status = JobStatus.PROCESSING
            job.updated_at = now
            self.session.add(job)

        await self.session.flush()
        return jobs

    async def reset_stale(self, updated_before: datetime) -> list[Job]:
        """
        Return stale processing jobs to the pending pool

        Args:
            updated_before: Jobs whose heartbeat is older than this are stale

        Returns:
            Jobs moved back to pending (uncommitted; caller commits)
        """
        stmt = (
            select(Job)
            .where(Job.status == JobStatus.PROCESSING)
            .where(Job.updated_at < updated_before)
            .order_by(Job.created_at, Job.id)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        jobs = list(result.scalars().all())

        now = datetime.utcnow()
        for job in jobs:
            job.status = JobStatus.PENDING
            job.updated_at = now
            self.session.add(job)

        await self.session.flush()
        return jobs

    async def lock_processing(self, job_id: int) -> Optional[Job]:
        """
        Lock a processing job with FOR UPDATE NOWAIT

        Raises:
            LockContention: the row is locked by another worker
        """
        stmt = (
            select(Job)
            .where(Job.id == job_id)
            .where(Job.status == JobStatus.PROCESSING)
            .with_for_update(nowait=True)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(stmt)
        except DBAPIError as e:
            if is_lock_not_available(e):
                raise LockContention(f"Job {job_id} is locked by another worker") from e
            raise
        return result.scalar_one_or_none()

    async def touch(self, job_id: int) -> bool:
        stmt = (
            update(Job)
            .where(Job.id == job_id)
            .where(Job.status == JobStatus.PROCESSING)
            .values(updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def save(self, job: Job) -> Job:
        self.session.add(job)
        await self.session.flush()
        return job
