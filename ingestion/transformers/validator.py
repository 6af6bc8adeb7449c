"""
Classify raw CDC events into processed records or quarantine rejections
"""

import re
from typing import Optional
from models.base import CdcOperation
from schemas.events import RawEvent
from schemas.records import ProcessedRecord, RejectedRecord, ValidationOutcome
from ingestion.transformers.entry_types import map_entry_type
from ingestion.transformers.timestamps import TimestampNormalizer
import logging

logger = logging.getLogger(__name__)

HEADER_TABLE_NAME = "TableName"
HEADER_ENTRY_TYPE = "A_ENTTYP"
HEADER_TIMESTAMP = "A_TIMSTAMP"

REQUIRED_HEADERS = (HEADER_TABLE_NAME, HEADER_ENTRY_TYPE)

PLACEHOLDER_TABLE_NAME = "${TableName}"
PLACEHOLDER_TOPIC = "${topic}"

_ANY_PLACEHOLDER = re.compile(r"\$\{[^}]*\}")


class RecordValidator:
    """
    Turn each RawEvent into exactly one ProcessedRecord or RejectedRecord.

    Handles:
    - Required header checks (TableName, A_ENTTYP)
    - Entry type -> operation mapping
    - Key/value presence per operation
    - Optional A_TIMSTAMP normalization
    - Target table name resolution

    ``validate`` never raises: unexpected errors become rejections too.
    """

    def __init__(self, normalizer: TimestampNormalizer, table_name_format: str = PLACEHOLDER_TABLE_NAME):
        self.normalizer = normalizer
        self.table_name_format = table_name_format

    def validate(self, event: RawEvent) -> ValidationOutcome:
        try:
            return self._classify(event)
        except Exception as e:
            logger.error(
                f"Unexpected error processing record "
                f"{event.topic}/{event.partition}/{event.offset}: {str(e)}",
                exc_info=True
            )
            return RejectedRecord(event=event, reason=f"Processing error: {str(e)}")

    def _classify(self, event: RawEvent) -> ValidationOutcome:
        # 1. Required headers
        missing = [name for name in REQUIRED_HEADERS if _is_blank(event.header(name))]
        if missing:
            return RejectedRecord(
                event=event,
                reason=" ".join(f"Missing header: {name}." for name in missing)
            )

        table_name = event.header(HEADER_TABLE_NAME).strip()
        entry_type = event.header(HEADER_ENTRY_TYPE)

        # 2. Entry type -> operation
        operation = map_entry_type(entry_type)
        if operation is None:
            return RejectedRecord(event=event, reason=f"Unrecognized A_ENTTYP code: '{entry_type}'")

        # 3. Operation-specific requirements
        if operation == CdcOperation.DELETE:
            if event.key is None:
                return RejectedRecord(event=event, reason="DELETE operation requires a non-null record key")
        elif event.value is None:
            return RejectedRecord(event=event, reason=f"{operation.value} operation requires a non-null value")

        # 4. Timestamp is advisory; None when absent or unparseable
        timestamp = self.normalizer.normalize(event.header(HEADER_TIMESTAMP))

        return ProcessedRecord(
            target_table=self.resolve_target_table(table_name, event.topic),
            operation=operation,
            key=event.key,
            value=event.value,
            key_schema=event.key_schema,
            value_schema=event.value_schema,
            timestamp=timestamp
        )

    def resolve_target_table(self, table_name: Optional[str], topic: Optional[str]) -> str:
        """Fill the table name template; unknown placeholders resolve to nothing"""
        resolved = (
            self.table_name_format
            .replace(PLACEHOLDER_TABLE_NAME, table_name or "")
            .replace(PLACEHOLDER_TOPIC, topic or "")
        )
        return _ANY_PLACEHOLDER.sub("", resolved)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()
