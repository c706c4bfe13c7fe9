"""Unit of Work Interface

Groups repository writes into one database transaction.
"""

from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    """
    Abstract transaction boundary

    Leaving the context without committing rolls the transaction back.
    """

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
