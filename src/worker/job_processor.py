"""Job Processor

Executes one claimed job end to end: re-validate and lock, heartbeat,
generate, upload, settle.
"""

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Optional
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.job_repository import SqlAlchemyJobRepository
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.services.generation_client import render_prompt
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.financial_ledger import FinancialLedger
from src.app.services.generation_service import GenerationRequest, GenerationService
from src.app.services.storage_service import StorageService
from src.app.use_cases.jobs import CompleteJob, CompleteJobCommandDTO, CompleteJobResponseDTO
from src.domain.details import GenerationOptions, UnitError
from src.domain.errors import LockContention
from src.domain.job import Job

logger = logging.getLogger(__name__)


def storage_key(account_id: int, job_id: int, position: int) -> str:
    return f"generated/{account_id}/{job_id}/{position}.png"


class JobProcessor:
    """
    Worker-side job execution

    Flow:
    1. Lock the job with NOWAIT in a short transaction (skip on contention
       or when it is no longer processing) and refresh its heartbeat
    2. Start the heartbeat task (cancelled on every exit path)
    3. Generate all units through the generation service
    4. Upload generated images to storage
    5. Settle status, units and refund through CompleteJob

    Any unexpected error during 3-4 settles the job as failed, which
    refunds the whole charge.
    """

    def __init__(
        self,
        session_factory,
        generation_service: GenerationService,
        storage_service: StorageService,
        heartbeat_interval_seconds: float = 300,
    ):
        self.session_factory = session_factory
        self.generation_service = generation_service
        self.storage_service = storage_service
        self.heartbeat_interval_seconds = heartbeat_interval_seconds

    async def process(self, job_id: int) -> Optional[CompleteJobResponseDTO]:
        job = await self.lock(job_id)
        if job is None:
            return None

        logger.info(f"Processing job {job_id} ({job.batch_count} units)")

        async with self.heartbeat(job_id):
            try:
                generated_urls, unit_errors = await self.execute(job)
                command = CompleteJobCommandDTO(
                    job_id=job_id, generated_urls=generated_urls, unit_errors=unit_errors
                )
            except Exception as e:
                logger.error(f"Job {job_id} processing failed: {e}")
                command = CompleteJobCommandDTO(job_id=job_id, failure_reason=str(e))

            return await self.complete(command)

    async def lock(self, job_id: int) -> Optional[Job]:
        """Re-validate the claim; None means another worker owns the job or it is done"""
        async with self.session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            job_repo = SqlAlchemyJobRepository(session)

            try:
                job = await job_repo.lock_processing(job_id)
            except LockContention:
                await uow.rollback()
                logger.info(f"Job {job_id} is locked by another worker, skipping")
                return None

            if job is None:
                await uow.rollback()
                logger.info(f"Job {job_id} is no longer processing, skipping")
                return None

            job.updated_at = datetime.utcnow()
            await job_repo.save(job)
            await uow.commit()
            return job

    @contextlib.asynccontextmanager
    async def heartbeat(self, job_id: int):
        task = asyncio.create_task(self._beat(job_id), name=f"heartbeat-{job_id}")
        try:
            yield task
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _beat(self, job_id: int) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval_seconds)
            try:
                async with self.session_factory() as session:
                    touched = await SqlAlchemyJobRepository(session).touch(job_id)
                    await session.commit()
            except Exception as e:
                logger.error(f"Failed to update heartbeat for job {job_id}: {e}")
                continue

            if not touched:
                logger.warning(f"Job {job_id} left processing, stopping heartbeat")
                return
            logger.debug(f"Updated heartbeat for job {job_id}")

    async def execute(self, job: Job) -> tuple[list[str], list[UnitError]]:
        request = GenerationRequest(
            prompt=render_prompt(job.prompt, job.template_prompt),
            reference_image_urls=list(job.reference_image_urls or []),
            size=job.size,
            options=GenerationOptions.model_validate(job.generation_options or {}),
        )
        results = await self.generation_service.generate_units(request, job.batch_count)

        unit_errors: list[UnitError] = []
        # (unit index, temporary url) in request order
        images: list[tuple[int, str]] = []
        for result in sorted(results, key=lambda r: r.index):
            if result.success:
                images.extend((result.index, url) for url in result.urls)
            else:
                unit_errors.append(
                    UnitError(
                        index=result.index,
                        stage="generation",
                        error=result.error or "Unknown error",
                        attempts=result.attempts,
                    )
                )

        uploads = await asyncio.gather(
            *(
                self._upload(job, position, url)
                for position, (_, url) in enumerate(images)
            )
        )

        stored_urls: list[str] = []
        for (unit_index, url), (stored, error) in zip(images, uploads):
            if stored:
                stored_urls.append(stored)
            else:
                unit_errors.append(
                    UnitError(index=unit_index, stage="upload", error=error, attempts=1, url=url)
                )

        unit_errors.sort(key=lambda e: e.index)
        return stored_urls, unit_errors

    async def _upload(self, job: Job, position: int, url: str) -> tuple[Optional[str], str]:
        try:
            data = await self.storage_service.download(url)
            stored = await self.storage_service.upload(
                data, storage_key(job.account_id, job.id, position)
            )
            return stored, ""
        except Exception as e:
            logger.warning(f"Job {job.id}: upload of image {position} failed: {e}")
            return None, str(e) or e.__class__.__name__

    async def complete(self, command: CompleteJobCommandDTO) -> Optional[CompleteJobResponseDTO]:
        async with self.session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            ledger = FinancialLedger(
                SqlAlchemyAccountRepository(session),
                SqlAlchemyLedgerEntryRepository(session),
            )
            use_case = CompleteJob(uow, SqlAlchemyJobRepository(session), ledger)
            result = await use_case.execute(command)

        if result.is_err():
            logger.error(f"Failed to settle job {command.job_id}: {result.error.message} {result.error.reason or ''}")
            return None
        return result.value
