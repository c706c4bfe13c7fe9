"""Get Balance Use Case

Retrieves an account's current balance.
"""

from libs.result import Result, Return, Error
from src.app.repositories.account_repository import AccountRepository
from src.app.use_cases.billing.dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Read-only operation that retrieves the current balance of an account.
    """

    def __init__(self, account_repo: AccountRepository):
        """
        Initialize GetBalance use case

        Args:
            account_repo: Repository for accessing accounts
        """
        self.account_repo = account_repo

    async def execute(self, account_id: int) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Args:
            account_id: The account identifier

        Returns:
            Result[BalanceResponseDTO]: Success with balance data or error

        Errors:
            ACCOUNT_NOT_FOUND: No such account
        """
        account = await self.account_repo.get_by_id(account_id)

        if not account:
            return Return.err(
                Error(
                    code="ACCOUNT_NOT_FOUND",
                    message=f"Account {account_id} not found",
                )
            )

        return Return.ok(
            BalanceResponseDTO(
                account_id=account.id,
                user_id=account.user_id,
                balance=account.balance,
                last_updated=account.updated_at,
            )
        )
