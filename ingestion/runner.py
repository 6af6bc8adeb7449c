# ============================================================================
# File: ingestion/runner.py
# Description: Batch orchestrator for the CDC sink
# ============================================================================
"""
CDC Sink Runner - Orchestrates Classify, Write, Quarantine for one batch.

This module provides the per-connection processing unit with:
- Per-event classification that never fails the batch
- Per-table, per-operation batched writes
- Quarantine of rejected events in the same transaction
- All-or-nothing commit per batch with rollback on any write failure
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncConnection
import logging

from core.config import Settings, settings as default_settings
from core.database import BatchTransaction
from core.exceptions import CdcSinkError, WriteError
from ingestion.dialects import Dialect, dialect_for_connection
from ingestion.loaders.quarantine_writer import QuarantineWriter
from ingestion.loaders.table_writer import TableWriter
from ingestion.transformers.timestamps import TimestampNormalizer
from ingestion.transformers.validator import RecordValidator
from schemas.events import RawEvent
from schemas.records import ProcessedRecord, RejectedRecord

logger = logging.getLogger(__name__)


class CdcSinkRunner:
    """
    CDC sink processing unit.

    Responsibilities:
    - Own one connection and the dialect selected for it
    - Classify each event into a processed or rejected record
    - Write processed records per target table and quarantine the rest
    - Commit or roll back each batch as a whole

    Batches must be handed in one at a time: ``put`` returns only after the
    batch is committed or rolled back.
    """

    def __init__(
        self,
        connection: AsyncConnection,
        settings: Optional[Settings] = None,
        dialect: Optional[Dialect] = None
    ):
        self.connection = connection
        self.settings = settings or default_settings
        self.dialect = dialect or dialect_for_connection(connection)

        self.normalizer = TimestampNormalizer(self.settings.DEFAULT_TIMEZONE)
        self.validator = RecordValidator(self.normalizer, self.settings.TABLE_NAME_FORMAT)
        self.table_writer = TableWriter(self.dialect, self.settings)
        self.quarantine_writer = QuarantineWriter(self.settings)

        logger.info(
            f"CDC sink started: dialect={self.dialect.name}, "
            f"table_name_format={self.settings.TABLE_NAME_FORMAT}, "
            f"timezone={self.settings.DEFAULT_TIMEZONE}, "
            f"pk_fields={self.settings.pk_field_list}"
        )

    def classify(
        self,
        events: Iterable[RawEvent]
    ) -> Tuple[Dict[str, List[ProcessedRecord]], List[RejectedRecord]]:
        """
        Validate every event.

        Returns:
            Processed records grouped by target table (batch order kept
            within each table) and the rejected records
        """
        grouped: Dict[str, List[ProcessedRecord]] = OrderedDict()
        rejected: List[RejectedRecord] = []

        for event in events:
            outcome = self.validator.validate(event)
            if isinstance(outcome, RejectedRecord):
                logger.warning(
                    f"Rejected record {event.topic}/{event.partition}/{event.offset}: {outcome.reason}"
                )
                rejected.append(outcome)
            else:
                grouped.setdefault(outcome.target_table, []).append(outcome)

        return grouped, rejected

    async def put(self, events: Iterable[RawEvent]) -> Dict[str, Any]:
        """
        Process one inbound batch.

        Args:
            events: Raw events in delivery order

        Returns:
            Dictionary with batch statistics:
            - status: "success" or "partial_success" (some events quarantined)
            - records_received: Number of events in the batch
            - records_written: Number of records written to target tables
            - records_quarantined: Number of rows written to the quarantine table

        Raises:
            WriteError: If any statement fails; the batch is rolled back
                and the caller decides whether to redeliver it
        """
        events = list(events)
        if not events:
            return {
                "status": "success",
                "records_received": 0,
                "records_written": 0,
                "records_quarantined": 0,
                "message": "Empty batch"
            }

        logger.info(f"Received {len(events)} records")
        grouped, rejected = self.classify(events)

        scope = BatchTransaction(self.connection)
        await scope.begin()

        try:
            records_written = await self.table_writer.write(scope, grouped)
            records_quarantined = await self.quarantine_writer.write(scope, rejected)
            await scope.commit()

        except CdcSinkError as e:
            await scope.rollback()
            logger.error(f"Batch rolled back: {str(e)}", extra={"error_context": e.to_dict()})
            raise

        except Exception as e:
            await scope.rollback()
            logger.error(f"Batch rolled back after unexpected error: {str(e)}", exc_info=True)
            raise WriteError(
                "Unexpected error while writing batch",
                context={"records": len(events)},
                original_exception=e
            )

        result = {
            "status": "partial_success" if rejected else "success",
            "records_received": len(events),
            "records_written": records_written,
            "records_quarantined": records_quarantined,
        }
        logger.info(
            f"Batch committed: {records_written} written, "
            f"{records_quarantined} quarantined out of {len(events)}"
        )
        return result
