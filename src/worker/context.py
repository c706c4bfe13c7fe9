"""Application context

Owns every long-lived collaborator of the process (database engine, HTTP
client, shared rate limiter, queue, scheduler, sweeps) and their start/stop
lifecycle. Constructed once at startup and handed to the API and workers.
"""

import logging
from typing import Optional
import httpx
from src.adapter.services.generation_client import SeedreamGenerationClient
from src.adapter.services.rate_limiter import TokenBucketRateLimiter
from src.adapter.services.storage_client import HttpStorageService
from src.adapter.services.wechat_pay import create_payment_provider
from src.app.services.generation_service import GenerationService
from src.app.services.payment_provider import PaymentProvider
from src.app.services.storage_service import StorageService
from src.depends import create_engine, create_session_factory
from src.worker.job_processor import JobProcessor
from src.worker.job_queue import JobQueue
from src.worker.ledger_reconciler import LedgerReconcilerWorker
from src.worker.order_expiry import OrderExpiryWorker
from src.worker.task_scheduler import TaskSchedulerWorker

logger = logging.getLogger(__name__)


class ApplicationContext:
    """
    Process-wide dependency container

    Collaborators may be injected (tests); anything not injected is built
    from the configuration.
    """

    def __init__(
        self,
        config,
        session_factory=None,
        http_client: Optional[httpx.AsyncClient] = None,
        generation_service: Optional[GenerationService] = None,
        storage_service: Optional[StorageService] = None,
        payment_provider: Optional[PaymentProvider] = None,
    ):
        self.config = config

        self.engine = None
        if session_factory is None:
            self.engine = create_engine(config)
            session_factory = create_session_factory(self.engine)
        self.session_factory = session_factory

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient()

        self.rate_limiter = TokenBucketRateLimiter(
            capacity=config.RATE_LIMIT_TOKENS,
            refill_interval=config.RATE_LIMIT_INTERVAL_SECONDS,
        )
        self.generation_service = generation_service or SeedreamGenerationClient(
            http_client=self.http_client,
            rate_limiter=self.rate_limiter,
            base_url=config.SEEDREAM_BASE_URL,
            api_key=config.SEEDREAM_API_KEY,
            model=config.SEEDREAM_MODEL,
            timeout_seconds=config.GENERATION_TIMEOUT_SECONDS,
            max_attempts=config.GENERATION_MAX_ATTEMPTS,
            initial_retry_delay=config.GENERATION_INITIAL_RETRY_DELAY,
            max_retry_delay=config.GENERATION_MAX_RETRY_DELAY,
            unit_concurrency=config.GENERATION_JOB_CONCURRENCY,
        )
        self.storage_service = storage_service or HttpStorageService(
            http_client=self.http_client,
            upload_url=config.STORAGE_UPLOAD_URL,
            public_url=config.STORAGE_PUBLIC_URL,
            api_key=config.STORAGE_API_KEY,
        )
        self.payment_provider = payment_provider or create_payment_provider(
            config, self.http_client
        )

        self.processor = JobProcessor(
            session_factory=self.session_factory,
            generation_service=self.generation_service,
            storage_service=self.storage_service,
            heartbeat_interval_seconds=config.HEARTBEAT_INTERVAL_SECONDS,
        )
        self.queue = JobQueue(
            handler=self.processor.process,
            concurrency=config.QUEUE_CONCURRENCY,
            max_size=config.QUEUE_MAX_SIZE,
        )
        self.scheduler = TaskSchedulerWorker(
            session_factory=self.session_factory,
            queue=self.queue,
            batch_size=config.SCHEDULER_BATCH_SIZE,
            interval_seconds=config.SCHEDULER_INTERVAL_SECONDS,
            recovery_interval_seconds=config.RECOVERY_INTERVAL_SECONDS,
            job_timeout_minutes=config.JOB_TIMEOUT_MINUTES,
        )
        self.order_expiry = OrderExpiryWorker(
            session_factory=self.session_factory,
            provider=self.payment_provider,
            batch_size=config.ORDER_EXPIRY_BATCH_SIZE,
            interval_seconds=config.ORDER_EXPIRY_INTERVAL_SECONDS,
        )
        self.reconciler = LedgerReconcilerWorker(
            session_factory=self.session_factory,
            enabled=config.RECONCILIATION_ENABLED,
        )
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        self.queue.start()
        self.scheduler.start()
        self.order_expiry.start()
        if self.config.RECONCILIATION_ENABLED:
            self.reconciler.start(self.config.RECONCILIATION_INTERVAL_SECONDS)
        self._started = True
        logger.info("Background workers started")

    async def stop(self) -> None:
        if self._started:
            await self.scheduler.stop()
            await self.order_expiry.stop()
            await self.reconciler.stop()
            await self.queue.stop()
            self._started = False
            logger.info("Background workers stopped")

        if self._owns_http_client:
            await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()
