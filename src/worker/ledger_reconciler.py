"""Ledger Reconciliation Background Worker

Periodically audits every account's ledger chain against its balance.
Can be run as a standalone script or alongside the other workers.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.app.use_cases.billing import ReconcileLedger, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker:
    """
    Background worker for ledger reconciliation

    Features:
    - Checks chain continuity and balance drift for every account
    - Logs discrepancies for investigation (never modifies data)
    - Can run once or continuously

    Usage:
        # Run once
        worker = LedgerReconcilerWorker(session_factory)
        result = await worker.run_once()

        # Run continuously
        await worker.run_forever(interval_seconds=86400)  # Daily
    """

    def __init__(self, session_factory, enabled: bool = True):
        self.session_factory = session_factory
        self.enabled = enabled
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> ReconciliationResultDTO:
        if not self.enabled:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                total_accounts_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.session_factory() as session:
            use_case = ReconcileLedger(
                account_repo=SqlAlchemyAccountRepository(session),
                entry_repo=SqlAlchemyLedgerEntryRepository(session),
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Reconciliation failed: {result.error.message}")
            raise RuntimeError(f"Reconciliation failed: {result.error.message}")

        response = result.value

        if response.discrepancies_found > 0:
            logger.error(
                f"ALERT: {response.discrepancies_found} ledger discrepancies found!"
            )

        return response

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(
            f"Starting continuous ledger reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete. "
                    f"Checked {result.total_accounts_checked} accounts, "
                    f"found {result.discrepancies_found} discrepancies "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    def start(self, interval_seconds: int = 86400) -> None:
        if self._task is None:
            self._task = asyncio.create_task(
                self.run_forever(interval_seconds), name="ledger-reconciler"
            )

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.ledger_reconciler --once

        # Run continuously with custom interval (in seconds)
        python -m src.worker.ledger_reconciler --interval 3600
    """
    import argparse
    from config import ApplicationConfig
    from src.depends import create_engine, create_session_factory

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Ledger Reconciliation Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400 = 24 hours)"
    )
    args = parser.parse_args()

    engine = create_engine(ApplicationConfig)
    worker = LedgerReconcilerWorker(
        create_session_factory(engine), enabled=ApplicationConfig.RECONCILIATION_ENABLED
    )

    try:
        if args.once:
            result = await worker.run_once()
            print(f"Reconciliation complete:")
            print(f"  Total accounts checked: {result.total_accounts_checked}")
            print(f"  Discrepancies found: {result.discrepancies_found}")
            print(f"  Execution time: {result.execution_time_ms}ms")
            for d in result.discrepancies:
                print(
                    f"  - Account {d.account_id}: {d.kind} at entry {d.entry_id}, "
                    f"expected={d.expected}, actual={d.actual}"
                )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
