"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncConnection
from core.config import Settings
from core.database import create_engine, open_connection
from schemas.events import RawEvent

# In-memory SQLite: one private database per connection, resolved to the generic dialect
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def sink_settings() -> Settings:
    """Settings for a sink with auto-create/evolve and an 'id' primary key"""
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        DEFAULT_TIMEZONE="Asia/Taipei",
        PK_MODE="record_key",
        PK_FIELDS="id",
        AUTO_CREATE=True,
        AUTO_EVOLVE=True,
        BATCH_SIZE=3000,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = create_engine(TEST_DATABASE_URL)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_connection(test_engine) -> AsyncGenerator[AsyncConnection, None]:
    """Dedicated connection, as the host hands one to each processing unit"""
    async with open_connection(test_engine) as connection:
        yield connection


@pytest.fixture
def make_event():
    """Factory for RawEvents with the journal headers"""

    def _make_event(
        table_name="ORDERS",
        entry_type="PT",
        key=None,
        value=None,
        timestamp=None,
        offset=0,
        topic="journal.orders",
        headers=None,
    ) -> RawEvent:
        if headers is None:
            headers = []
            if table_name is not None:
                headers.append(("TableName", table_name))
            if entry_type is not None:
                headers.append(("A_ENTTYP", entry_type))
            if timestamp is not None:
                headers.append(("A_TIMSTAMP", timestamp))
        return RawEvent(
            topic=topic,
            partition=0,
            offset=offset,
            key=key,
            value=value,
            headers=headers,
        )

    return _make_event
