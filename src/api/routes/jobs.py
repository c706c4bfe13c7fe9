"""Jobs API Routes

Job creation (charged up front) and status polling.
"""

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import raise_for_error
from src.api.schemas.job_request import CreateJobRequestSchema
from src.app.services.financial_ledger import FinancialLedger
from src.app.use_cases.jobs import (
    CreateJob,
    GetJobStatus,
    CreateJobCommandDTO,
    CreateJobResponseDTO,
    JobStatusDTO,
)
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.job_repository import SqlAlchemyJobRepository
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.details import GenerationOptions
from src.depends import get_session

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post(
    "",
    response_model=CreateJobResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {
            "description": "Insufficient balance",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_BALANCE",
                            "message": "Insufficient balance. Required: 80, Available: 50"
                        }
                    }
                }
            }
        },
        404: {"description": "Account not found"},
    }
)
async def create_job(
    request: CreateJobRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Create a generation job.

    The account is charged `expected_unit_count * unit_price` immediately;
    undelivered units are refunded when the job completes.

    **Returns:**
    - 201: Job created and charged
    - 402: Insufficient balance (no job is created)
    - 404: Account not found
    """
    account_repo = SqlAlchemyAccountRepository(session)
    ledger = FinancialLedger(account_repo, SqlAlchemyLedgerEntryRepository(session))
    use_case = CreateJob(
        SqlAlchemyUnitOfWork(session),
        account_repo,
        SqlAlchemyJobRepository(session),
        ledger,
    )

    command = CreateJobCommandDTO(
        account_id=request.account_id,
        prompt=request.prompt,
        template_prompt=request.template_prompt,
        reference_image_urls=request.reference_image_urls,
        size=request.size,
        batch_count=request.batch_count,
        expected_unit_count=request.expected_unit_count or request.batch_count,
        unit_price=request.unit_price,
        options=GenerationOptions(**request.options.model_dump()),
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.get(
    "/{job_id}",
    response_model=JobStatusDTO,
)
async def get_job_status(
    job_id: int,
    session: AsyncSession = Depends(get_session),
):
    """
    Job status, delivered units and, for partial or failed jobs, the
    error summary with per-unit errors.
    """
    result = await GetJobStatus(SqlAlchemyJobRepository(session)).execute(job_id)

    if result.is_err():
        raise_for_error(result.error)
    return result.value
