"""OpenAccount Use Case

Creates the single account of a user.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.account_repository import AccountRepository
from src.domain.account import Account
from .dtos import OpenAccountCommandDTO, AccountResponseDTO

logger = logging.getLogger(__name__)


class OpenAccount:
    """
    Use Case: Open an account

    Idempotent on user_id: a second call returns the existing account
    untouched (initial_balance is ignored).
    """

    def __init__(self, uow: UnitOfWork, account_repo: AccountRepository):
        self.uow = uow
        self.account_repo = account_repo

    async def execute(self, command: OpenAccountCommandDTO) -> Result[AccountResponseDTO]:
        try:
            existing = await self.account_repo.get_by_user_id(command.user_id)
            if existing:
                return Return.ok(self._to_response_dto(existing, created=False))

            account = await self.account_repo.create(
                Account(user_id=command.user_id, balance=command.initial_balance)
            )
            await self.uow.commit()

            logger.info(f"Opened account {account.id} for user {command.user_id}")
            return Return.ok(self._to_response_dto(account, created=True))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="OPEN_ACCOUNT_FAILED",
                    message="Failed to open account",
                    reason=str(e),
                )
            )

    def _to_response_dto(self, account: Account, created: bool) -> AccountResponseDTO:
        return AccountResponseDTO(
            account_id=account.id,
            user_id=account.user_id,
            balance=account.balance,
            created=created,
            created_at=account.created_at,
        )
