"""
Database engine, connection and transaction scope with SQLAlchemy async
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine for the target database"""
    return create_async_engine(
        url or settings.DATABASE_URL,
        echo=False,
        poolclass=NullPool,  # One connection per processing unit, owned by the host
        future=True
    )


@asynccontextmanager
async def open_connection(engine: AsyncEngine) -> AsyncIterator[AsyncConnection]:
    """Open a dedicated connection for one processing unit"""
    async with engine.connect() as connection:
        yield connection


class BatchTransaction:
    """
    Transaction scope for one inbound batch.

    The runner creates one per batch and passes it to both the table writer
    and the quarantine writer. Only the runner commits or rolls back; the
    writers just execute against ``connection``.
    """

    def __init__(self, connection: AsyncConnection):
        self.connection = connection
        self._transaction: Optional[AsyncTransaction] = None

    @property
    def active(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    async def begin(self) -> "BatchTransaction":
        if self.connection.in_transaction():
            # Autobegun by an earlier statement (e.g. dialect probing)
            self._transaction = self.connection.get_transaction()
        else:
            self._transaction = await self.connection.begin()
        return self

    async def commit(self):
        if self.active:
            await self._transaction.commit()
        self._transaction = None

    async def rollback(self):
        if self.active:
            await self._transaction.rollback()
        self._transaction = None
