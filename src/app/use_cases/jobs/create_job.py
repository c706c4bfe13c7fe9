"""CreateJob Use Case

Creates a pending generation job and charges its full price in the
same transaction.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.financial_ledger import FinancialLedger
from src.app.repositories.account_repository import AccountRepository
from src.app.repositories.job_repository import JobRepository
from src.domain.errors import InsufficientBalance
from src.domain.job import Job, JobStatus
from .dtos import CreateJobCommandDTO, CreateJobResponseDTO

logger = logging.getLogger(__name__)


class CreateJob:
    """
    Use Case: Create a pre-paid generation job

    Business Rules:
    1. The account must exist
    2. charge = expected_unit_count * unit_price, debited at creation
    3. No job is created when the balance is insufficient
    4. Job row and charge entry commit together

    Flow:
    1. Check account exists
    2. Insert job (pending)
    3. Charge the account under row lock
    4. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: AccountRepository,
        job_repo: JobRepository,
        ledger: FinancialLedger,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.job_repo = job_repo
        self.ledger = ledger

    async def execute(self, command: CreateJobCommandDTO) -> Result[CreateJobResponseDTO]:
        try:
            account = await self.account_repo.get_by_id(command.account_id)
            if not account:
                return Return.err(
                    Error(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Account {command.account_id} not found",
                    )
                )

            job = Job(
                account_id=command.account_id,
                status=JobStatus.PENDING,
                prompt=command.prompt,
                template_prompt=command.template_prompt,
                reference_image_urls=list(command.reference_image_urls),
                size=command.size,
                generation_options=command.options.model_dump(mode="json"),
                batch_count=command.batch_count,
                expected_unit_count=command.expected_unit_count,
            )
            job = await self.job_repo.create(job)

            charge = await self.ledger.charge(
                account_id=command.account_id,
                expected_unit_count=command.expected_unit_count,
                unit_price=command.unit_price,
                job_id=job.id,
            )

            await self.uow.commit()

            logger.info(
                f"Created job {job.id} for account {command.account_id}: "
                f"charged {charge.amount}, balance {charge.balance_after}"
            )

            return Return.ok(
                CreateJobResponseDTO(
                    job_id=job.id,
                    account_id=job.account_id,
                    status=job.status.value,
                    expected_unit_count=job.expected_unit_count,
                    charged_amount=charge.amount,
                    balance_after=charge.balance_after,
                    created_at=job.created_at,
                )
            )

        except InsufficientBalance as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="INSUFFICIENT_BALANCE",
                    message=str(e),
                    reason=f"balance={e.available}, required={e.required}",
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CREATE_JOB_FAILED",
                    message="Failed to create job",
                    reason=str(e),
                )
            )
