"""Payment Order Expiry Background Worker

Closes pending payment orders past their expiry.
"""

import asyncio
import logging
from typing import Optional
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.repositories.payment_order_repository import SqlAlchemyPaymentOrderRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.financial_ledger import FinancialLedger
from src.app.services.order_settlement import OrderSettlement
from src.app.services.payment_provider import PaymentProvider
from src.app.use_cases.payments import ExpirePaymentOrders, ExpiryResultDTO

logger = logging.getLogger(__name__)


class OrderExpiryWorker:
    """
    Background worker for the payment order expiry sweep

    Usage:
        worker = OrderExpiryWorker(session_factory, provider)
        result = await worker.run_once()

        worker.start()   # every interval_seconds
    """

    def __init__(
        self,
        session_factory,
        provider: Optional[PaymentProvider],
        batch_size: int = 50,
        interval_seconds: float = 60,
    ):
        self.session_factory = session_factory
        self.provider = provider
        self.batch_size = batch_size
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> ExpiryResultDTO:
        async with self.session_factory() as session:
            order_repo = SqlAlchemyPaymentOrderRepository(session)
            ledger = FinancialLedger(
                SqlAlchemyAccountRepository(session),
                SqlAlchemyLedgerEntryRepository(session),
            )
            use_case = ExpirePaymentOrders(
                uow=SqlAlchemyUnitOfWork(session),
                order_repo=order_repo,
                settlement=OrderSettlement(order_repo, ledger),
                provider=self.provider,
            )
            result = await use_case.execute(self.batch_size)

        if result.is_err():
            raise RuntimeError(f"Expiry sweep failed: {result.error.reason}")
        return result.value

    async def run_forever(self):
        logger.info(f"Starting order expiry sweep every {self.interval_seconds}s")

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Expiry sweep cycle failed: {e}")

            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run_forever(), name="order-expiry")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
