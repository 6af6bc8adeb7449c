"""
Script to replay CDC events from a JSON-lines file through the sink

Each line is one event:
    {"topic": "...", "partition": 0, "offset": 42, "key": {...}, "value": {...},
     "headers": {"TableName": "ORDERS", "A_ENTTYP": "PT", "A_TIMSTAMP": "..."}}

Usage:
    python scripts/replay_events.py events.jsonl
"""

import argparse
import asyncio
import json
import sys
import os
import logging
from typing import Any, Dict, Iterator, List

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine
from core.config import Settings, settings
from core.database import create_engine, open_connection
from core.exceptions import DatabaseConnectionError, RetryableError
from core.logging import setup_logging
from ingestion.runner import CdcSinkRunner
from schemas.events import RawEvent

logger = logging.getLogger(__name__)


def read_events(path: str) -> Iterator[RawEvent]:
    """Parse events from a JSON-lines file, skipping blank lines"""
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                yield RawEvent(**json.loads(line))
            except ValueError as e:
                logger.error(f"Skipping line {line_number}: {str(e)}")


def chunked(events: Iterator[RawEvent], size: int) -> Iterator[List[RawEvent]]:
    batch: List[RawEvent] = []
    for event in events:
        batch.append(event)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


async def put_with_retry(engine: AsyncEngine, batch: List[RawEvent], config: Settings) -> Dict[str, Any]:
    """
    Deliver one batch, redelivering it on retryable failures.

    Each attempt gets a fresh connection: a failed batch has been rolled
    back and its connection may be unusable.
    """
    for attempt in range(config.MAX_RETRIES + 1):
        try:
            try:
                async with open_connection(engine) as connection:
                    runner = CdcSinkRunner(connection, config)
                    return await runner.put(batch)
            except (OperationalError, InterfaceError) as e:
                raise DatabaseConnectionError(
                    "Could not connect to the target database",
                    original_exception=e
                )

        except RetryableError as e:
            if attempt >= config.MAX_RETRIES:
                logger.error(f"Giving up after {attempt + 1} attempts: {str(e)}")
                raise
            logger.warning(
                f"Retryable failure, redelivering batch in {config.retry_backoff_seconds} seconds "
                f"(attempt {attempt + 1}/{config.MAX_RETRIES}): {str(e)}"
            )
            await asyncio.sleep(config.retry_backoff_seconds)


async def replay_events(path: str):
    """Replay all events of a file in BATCH_SIZE batches"""

    engine = create_engine()
    totals = {"records_received": 0, "records_written": 0, "records_quarantined": 0}

    try:
        for number, batch in enumerate(chunked(read_events(path), settings.BATCH_SIZE), 1):
            result = await put_with_retry(engine, batch, settings)
            for name in totals:
                totals[name] += result[name]
            logger.info(
                f"Batch {number}: Received={result['records_received']}, "
                f"Written={result['records_written']}, "
                f"Quarantined={result['records_quarantined']}"
            )

        logger.info(
            f"Replay completed: Received={totals['records_received']}, "
            f"Written={totals['records_written']}, "
            f"Quarantined={totals['records_quarantined']}"
        )

    except Exception as e:
        logger.error(f"Replay failed: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Replay CDC events into the target database")
    parser.add_argument("path", help="JSON-lines file with one event per line")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(replay_events(args.path))
