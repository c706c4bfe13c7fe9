"""SQLAlchemy unit of work

Wraps the AsyncSession shared by the repositories of one request or one
worker step. Context entry/exit comes from UnitOfWork: leaving the block
without commit() rolls back.
"""

import logging
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        if self.session.in_transaction():
            logger.debug("Rolling back open transaction")
        await self.session.rollback()
