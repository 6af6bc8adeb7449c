import asyncio
import logging
import sys
import os
from typing import Optional

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine
from core.logging import setup_logging
from models.quarantine import build_quarantine_table

logger = logging.getLogger(__name__)


async def init_database(url: Optional[str] = None):
    logger.info("Connecting to database...")
    engine = create_engine(url)

    # Target tables are created by the sink itself (AUTO_CREATE); only the
    # quarantine table is set up here
    table = build_quarantine_table(settings.CORRUPT_EVENTS_TABLE)

    try:
        async with engine.begin() as conn:
            logger.info(f"Creating table {table.name}...")
            await conn.run_sync(table.create, checkfirst=True)
            logger.info("Tables created successfully.")

    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()

if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
