"""Job Repository Interface

Defines the contract for job persistence, including the skip-locked
claim queries shared by every scheduler replica.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from src.domain.job import Job


class JobRepository(ABC):
    """
    Repository interface for Job persistence

    Claim methods use SELECT ... FOR UPDATE SKIP LOCKED so that concurrent
    claimers never receive the same row.
    """

    @abstractmethod
    async def create(self, job: Job) -> Job:
        """Persist a new job and return it with its generated ID"""
        pass

    @abstractmethod
    async def get_by_id(self, job_id: int, for_update: bool = False) -> Optional[Job]:
        """
        Retrieve job by ID

        Args:
            job_id: Job ID
            for_update: If True, lock the row with SELECT FOR UPDATE
        """
        pass

    @abstractmethod
    async def claim_pending(self, batch_size: int) -> list[Job]:
        """
        Move up to batch_size pending jobs (oldest first) to processing

        Rows locked by a concurrent claimer are skipped.

        Returns:
            The claimed jobs, already in processing state
        """
        pass

    @abstractmethod
    async def reset_stale(self, updated_before: datetime) -> list[Job]:
        """
        Move processing jobs whose heartbeat is older than updated_before
        back to pending, skipping rows locked elsewhere

        Returns:
            The recovered jobs
        """
        pass

    @abstractmethod
    async def lock_processing(self, job_id: int) -> Optional[Job]:
        """
        Lock a processing job without waiting

        Returns:
            The job if it is still processing, None otherwise

        Raises:
            LockContention: another worker holds the row lock
        """
        pass

    @abstractmethod
    async def touch(self, job_id: int) -> bool:
        """
        Refresh updated_at of a processing job (heartbeat)

        Returns:
            True if a processing row was touched
        """
        pass

    @abstractmethod
    async def save(self, job: Job) -> Job:
        """Flush changes of a loaded job"""
        pass
