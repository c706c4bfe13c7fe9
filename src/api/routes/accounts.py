"""Accounts API Routes

Account bootstrap, balance and ledger history.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import raise_for_error
from src.api.schemas.payment_request import OpenAccountRequestSchema
from src.app.use_cases.billing import (
    OpenAccount,
    GetBalance,
    ListLedgerEntries,
    OpenAccountCommandDTO,
    AccountResponseDTO,
    BalanceResponseDTO,
    ListLedgerEntriesResponseDTO,
)
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_session

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post(
    "",
    response_model=AccountResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def open_account(
    request: OpenAccountRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Open the account of a user.

    Idempotent on `user_id`: an existing account is returned with `created=false`.
    """
    use_case = OpenAccount(SqlAlchemyUnitOfWork(session), SqlAlchemyAccountRepository(session))
    result = await use_case.execute(
        OpenAccountCommandDTO(user_id=request.user_id, initial_balance=request.initial_balance)
    )

    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponseDTO,
    responses={
        404: {
            "description": "Account not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "ACCOUNT_NOT_FOUND",
                            "message": "Account 42 not found"
                        }
                    }
                }
            }
        }
    }
)
async def get_balance(
    account_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Current balance of an account in minor units."""
    result = await GetBalance(SqlAlchemyAccountRepository(session)).execute(account_id)

    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.get(
    "/{account_id}/ledger-entries",
    response_model=ListLedgerEntriesResponseDTO,
)
async def list_ledger_entries(
    account_id: int,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """
    Ledger history of an account, most recent first.

    Amounts are signed: charges are negative, refunds and settlements positive.
    """
    use_case = ListLedgerEntries(SqlAlchemyLedgerEntryRepository(session))
    result = await use_case.execute(account_id, limit=limit, offset=offset)

    if result.is_err():
        raise_for_error(result.error)
    return result.value
