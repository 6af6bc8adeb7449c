"""
Route rejected CDC events to the quarantine (corrupt events) table
"""

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence
from sqlalchemy import MetaData
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection
from core.config import Settings
from core.database import BatchTransaction
from core.exceptions import QuarantineWriteError, SerializationError
from models.quarantine import ERROR_REASON_MAX_LENGTH, build_quarantine_table
from schemas.records import RejectedRecord
from ingestion.transformers.validator import HEADER_ENTRY_TYPE, HEADER_TABLE_NAME
import logging

logger = logging.getLogger(__name__)

ELLIPSIS = "..."
TABLE_NAME_MAX_LENGTH = 255
ENTRY_TYPE_MAX_LENGTH = 10


def serialize(value: Any) -> Optional[str]:
    """
    Text form of a key, value or header set.

    None stays None, maps become JSON, strings pass through, other
    primitives become their JSON literal and anything else its str().
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return json.dumps(value, default=str, ensure_ascii=False)
    if isinstance(value, (bool, int, float)):
        return json.dumps(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def truncate_reason(reason: str, max_length: int = ERROR_REASON_MAX_LENGTH) -> str:
    if len(reason) <= max_length:
        return reason
    return reason[:max_length - len(ELLIPSIS)] + ELLIPSIS


def _clip(value: Optional[str], max_length: int) -> Optional[str]:
    return value[:max_length] if value is not None else None


class QuarantineWriter:
    """
    Insert rejected records into the quarantine table.

    A record that cannot be serialized is dropped with a logged error; the
    rest of the call is still written.
    """

    def __init__(self, settings: Settings, metadata: Optional[MetaData] = None):
        self.settings = settings
        self.table = build_quarantine_table(settings.CORRUPT_EVENTS_TABLE, metadata)

    async def ensure_table(self, connection: AsyncConnection):
        try:
            await connection.run_sync(self.table.create, checkfirst=True)
        except SQLAlchemyError as e:
            raise QuarantineWriteError(
                "Failed to create quarantine table",
                context={"table_name": self.table.name, "operation": "CREATE"},
                original_exception=e
            )

    def to_row(self, record: RejectedRecord) -> Dict[str, Any]:
        """Quarantine row for one rejected record; raises SerializationError"""
        event = record.event
        row = {
            "topic": event.topic,
            "kafka_partition": event.partition,
            "kafka_offset": event.offset,
            "error_reason": truncate_reason(record.reason),
            "table_name": _clip(event.header(HEADER_TABLE_NAME), TABLE_NAME_MAX_LENGTH),
            "entry_type": _clip(event.header(HEADER_ENTRY_TYPE), ENTRY_TYPE_MAX_LENGTH),
        }

        for column, part, data in (
            ("record_key", "key", event.key),
            ("record_value", "value", event.value),
            ("headers", "headers", event.header_map()),
        ):
            try:
                row[column] = serialize(data)
            except Exception as e:
                raise SerializationError(
                    f"Failed to serialize record {part}",
                    context={
                        "topic": event.topic,
                        "partition": event.partition,
                        "offset": event.offset,
                        "field": part
                    },
                    original_exception=e
                )
        return row

    async def write(self, scope: BatchTransaction, rejected: Sequence[RejectedRecord]) -> int:
        """
        Insert rejected records within the batch transaction.

        Returns:
            Number of rows inserted

        Raises:
            QuarantineWriteError: If the insert itself fails
        """
        if not rejected:
            return 0

        connection = scope.connection
        if self.settings.AUTO_CREATE:
            await self.ensure_table(connection)

        rows: List[Dict[str, Any]] = []
        for record in rejected:
            try:
                rows.append(self.to_row(record))
            except SerializationError as e:
                logger.error(f"Dropping quarantine record: {str(e)}")
            except Exception as e:
                event = record.event
                logger.error(
                    f"Dropping quarantine record {event.topic}/{event.partition}/{event.offset}: {str(e)}",
                    exc_info=True
                )

        if not rows:
            return 0

        try:
            await connection.execute(self.table.insert(), rows)
        except SQLAlchemyError as e:
            raise QuarantineWriteError(
                "Failed to write quarantine records",
                context={"table_name": self.table.name, "operation": "INSERT", "records": len(rows)},
                original_exception=e
            )

        logger.warning(f"Quarantined {len(rows)} records into {self.table.name}")
        return len(rows)
