"""Worker Queue

Bounded in-process queue of claimed job ids drained by a fixed number of
consumer tasks.
"""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class JobQueue:
    """
    Bounded-concurrency job consumer

    Features:
    - At most ``concurrency`` jobs execute at once
    - At most ``max_size`` jobs wait to start
    - A job id already queued or running is not queued again
    - Handler failures are logged; a consumer never dies on one job
    """

    def __init__(
        self,
        handler: Callable[[int], Awaitable[object]],
        concurrency: int = 5,
        max_size: int = 100,
    ):
        self.handler = handler
        self.concurrency = concurrency
        self.max_size = max_size
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._in_flight: set[int] = set()
        self._consumers: list[asyncio.Task] = []

    @property
    def in_flight(self) -> int:
        """Jobs queued or executing"""
        return len(self._in_flight)

    def available_slots(self) -> int:
        """Consumers with no job queued or running for them"""
        idle = self.concurrency - len(self._in_flight)
        return max(min(idle, self.max_size - self._queue.qsize()), 0)

    def push(self, job_id: int) -> bool:
        """
        Queue a job without waiting

        Returns:
            False when the job is already in flight or the queue is full
        """
        if job_id in self._in_flight:
            logger.debug(f"Job {job_id} already in flight, not queued again")
            return False

        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull:
            logger.warning(f"Queue full, job {job_id} left for recovery")
            return False

        self._in_flight.add(job_id)
        return True

    def start(self) -> None:
        if self._consumers:
            return
        self._consumers = [
            asyncio.create_task(self._consume(worker_id), name=f"job-consumer-{worker_id}")
            for worker_id in range(self.concurrency)
        ]
        logger.info(f"Job queue started with {self.concurrency} consumers")

    async def join(self) -> None:
        """Wait until every queued job has been handled"""
        await self._queue.join()

    async def stop(self) -> None:
        for consumer in self._consumers:
            consumer.cancel()
        await asyncio.gather(*self._consumers, return_exceptions=True)
        self._consumers = []
        logger.info("Job queue stopped")

    async def _consume(self, worker_id: int) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self.handler(job_id)
            except Exception as e:
                logger.error(f"Consumer {worker_id}: job {job_id} raised: {e}")
            finally:
                self._in_flight.discard(job_id)
                self._queue.task_done()
