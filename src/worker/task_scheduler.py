"""Task Scheduler Background Worker

Claims pending jobs on a fixed interval and feeds them to the worker
queue; a second timer returns jobs with a stale heartbeat to pending.
Any number of replicas may run against the same database.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional
from src.adapter.repositories.job_repository import SqlAlchemyJobRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.jobs import ClaimPendingJobs, RecoverStuckJobs
from src.worker.job_queue import JobQueue

logger = logging.getLogger(__name__)


class TaskSchedulerWorker:
    """
    Background worker for job dispatch and crash recovery

    Features:
    - Claims at most min(batch_size, idle consumers) jobs per tick; a
      claimed job never waits in memory without a heartbeat
    - Claim ticks never wait on job execution
    - A failed tick is logged and retried on the next one
    - Recovery sweep runs on its own interval

    Usage:
        scheduler = TaskSchedulerWorker(session_factory, queue)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        session_factory,
        queue: JobQueue,
        batch_size: int = 10,
        interval_seconds: float = 5,
        recovery_interval_seconds: float = 30,
        job_timeout_minutes: int = 10,
    ):
        self.session_factory = session_factory
        self.queue = queue
        self.batch_size = batch_size
        self.interval_seconds = interval_seconds
        self.recovery_interval_seconds = recovery_interval_seconds
        self.job_timeout_minutes = job_timeout_minutes
        self._tasks: list[asyncio.Task] = []

    async def run_claim_once(self) -> list[int]:
        """
        Claim and dispatch one batch

        Returns:
            Ids of the claimed jobs
        """
        slots = min(self.batch_size, self.queue.available_slots())
        if slots <= 0:
            logger.debug("All consumers busy, skipping claim")
            return []

        async with self.session_factory() as session:
            use_case = ClaimPendingJobs(
                uow=SqlAlchemyUnitOfWork(session),
                job_repo=SqlAlchemyJobRepository(session),
            )
            result = await use_case.execute(slots)

        if result.is_err():
            logger.error(f"Claim tick failed: {result.error.reason}")
            return []

        job_ids = result.value.job_ids
        for job_id in job_ids:
            self.queue.push(job_id)
        return job_ids

    async def run_recovery_once(self) -> list[int]:
        """Reset stale processing jobs; returns their ids"""
        async with self.session_factory() as session:
            use_case = RecoverStuckJobs(
                uow=SqlAlchemyUnitOfWork(session),
                job_repo=SqlAlchemyJobRepository(session),
            )
            result = await use_case.execute(self.job_timeout_minutes)

        if result.is_err():
            logger.error(f"Recovery tick failed: {result.error.reason}")
            return []
        return result.value.job_ids

    async def run_forever(self):
        logger.info(
            f"Starting task scheduler: claim every {self.interval_seconds}s "
            f"(batch {self.batch_size}), recovery every {self.recovery_interval_seconds}s "
            f"(timeout {self.job_timeout_minutes}min)"
        )
        await asyncio.gather(
            self._every(self.interval_seconds, self.run_claim_once, "claim"),
            self._every(self.recovery_interval_seconds, self.run_recovery_once, "recovery"),
        )

    def start(self) -> None:
        if not self._tasks:
            self._tasks = [asyncio.create_task(self.run_forever(), name="task-scheduler")]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Task scheduler stopped")

    @staticmethod
    async def _every(
        interval: float, tick: Callable[[], Awaitable[Optional[list[int]]]], name: str
    ) -> None:
        while True:
            try:
                await tick()
            except Exception as e:
                logger.error(f"Scheduler {name} tick failed: {e}")
            await asyncio.sleep(interval)


async def main():
    """
    Entry point for running the job workers as a standalone process

    Usage:
        python -m src.worker.task_scheduler
    """
    from config import ApplicationConfig
    from src.worker.context import ApplicationContext

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    context = ApplicationContext(ApplicationConfig)
    await context.start()
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received shutdown signal")
    finally:
        await context.stop()


if __name__ == "__main__":
    asyncio.run(main())
