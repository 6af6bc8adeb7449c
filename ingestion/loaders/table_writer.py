"""
Write processed CDC records into their target tables
"""

import itertools
import json
import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple
from sqlalchemy import inspect, text
from sqlalchemy.exc import DBAPIError, InterfaceError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection
from core.config import Settings
from core.database import BatchTransaction
from core.exceptions import DatabaseConnectionError, SchemaEvolutionError, WriteError
from ingestion.dialects.base import Dialect
from models.base import CdcOperation
from schemas.records import ProcessedRecord
import logging

logger = logging.getLogger(__name__)

# Buckets are executed in this order for every table
OPERATION_ORDER = (
    CdcOperation.INSERT,
    CdcOperation.UPDATE,
    CdcOperation.UPSERT,
    CdcOperation.DELETE,
)

_POSITIONAL = re.compile(r"\?")


def bind_positional(sql: str, rows: Sequence[Sequence[Any]]) -> Tuple[Any, List[Dict[str, Any]]]:
    """
    Turn a ``?`` statement and positional rows into a text() clause with
    ordered bind names (p1, p2, ...) and one parameter dict per row.
    """
    counter = itertools.count(1)
    statement = text(_POSITIONAL.sub(lambda _: f":p{next(counter)}", sql))
    params = [
        {f"p{i}": bind_value(value) for i, value in enumerate(row, 1)}
        for row in rows
    ]
    return statement, params


def bind_value(value: Any) -> Any:
    """Nested maps and arrays are stored as JSON text"""
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return value


class TableWriter:
    """
    Write batches of processed records, grouped by target table.

    Ensures:
    - One ordered batched statement per (table, operation) bucket
    - Missing tables/columns created first when AUTO_CREATE/AUTO_EVOLVE are on
    - Never commits or rolls back: the caller owns the transaction
    """

    def __init__(self, dialect: Dialect, settings: Settings):
        self.dialect = dialect
        self.settings = settings

    @property
    def key_fields(self) -> List[str]:
        return self.settings.pk_field_list

    async def write(self, scope: BatchTransaction, batch: Mapping[str, Sequence[ProcessedRecord]]) -> int:
        """
        Write every table group of a batch.

        Args:
            scope: Transaction scope of the current batch
            batch: Records per target table, in batch order

        Returns:
            Number of records written (skipped records are not counted)

        Raises:
            WriteError: If any statement fails; nothing is committed
        """
        written = 0
        for table, records in batch.items():
            if not records:
                continue
            written += await self.write_table(scope.connection, table, list(records))
        return written

    async def write_table(self, connection: AsyncConnection, table: str, records: List[ProcessedRecord]) -> int:
        sample = schema_sample(records)

        if self.settings.AUTO_CREATE:
            await self.ensure_table(connection, table, sample)
        if self.settings.AUTO_EVOLVE:
            await self.evolve_table(connection, table, sample)

        buckets: Dict[CdcOperation, List[ProcessedRecord]] = {op: [] for op in OPERATION_ORDER}
        for record in records:
            buckets[record.operation].append(record)

        written = 0
        for operation in OPERATION_ORDER:
            bucket = buckets[operation]
            if not bucket:
                continue
            if operation == CdcOperation.INSERT:
                written += await self._write_inserts(connection, table, bucket)
            elif operation == CdcOperation.UPDATE:
                written += await self._write_updates(connection, table, bucket)
            elif operation == CdcOperation.UPSERT:
                written += await self._write_upserts(connection, table, bucket)
            else:
                written += await self._write_deletes(connection, table, bucket)

        logger.info(f"Wrote {written} records to {table}")
        return written

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------

    async def table_exists(self, connection: AsyncConnection, table: str) -> bool:
        name = self.dialect.normalize_identifier_for_metadata(table)
        return await connection.run_sync(lambda conn: inspect(conn).has_table(name))

    async def existing_columns(self, connection: AsyncConnection, table: str) -> List[str]:
        name = self.dialect.normalize_identifier_for_metadata(table)
        columns = await connection.run_sync(lambda conn: inspect(conn).get_columns(name))
        return [col["name"] for col in columns]

    async def ensure_table(self, connection: AsyncConnection, table: str, sample: ProcessedRecord):
        """Create the table from the sample record when it does not exist"""
        try:
            if await self.table_exists(connection, table):
                return
        except SQLAlchemyError as e:
            raise wrap_error("Failed to read table metadata", table, "CREATE", 0, e)

        if not sample.columns():
            logger.warning(f"Cannot create {table}: no record in the batch carries columns")
            return

        ddl = self.dialect.build_create_table(table, sample, self.key_fields)
        logger.info(f"Creating table {table}: {ddl}")
        await self._execute_ddl(connection, table, "CREATE", ddl)

    async def evolve_table(self, connection: AsyncConnection, table: str, sample: ProcessedRecord):
        """Add the sample's columns the table is missing (case-insensitive)"""
        try:
            if not await self.table_exists(connection, table):
                return
            existing = {col.lower() for col in await self.existing_columns(connection, table)}
        except SQLAlchemyError as e:
            raise wrap_error("Failed to read table metadata", table, "ALTER", 0, e)

        missing = [col for col in sample.columns() if col.lower() not in existing]
        if not missing:
            return

        logger.info(f"Adding columns {missing} to {table}")
        for ddl in self.dialect.build_alter(table, missing, sample):
            await self._execute_ddl(connection, table, "ALTER", ddl)

    async def _execute_ddl(self, connection: AsyncConnection, table: str, operation: str, ddl: str):
        try:
            await connection.execute(text(ddl))
        except SQLAlchemyError as e:
            raise SchemaEvolutionError(
                f"{operation} TABLE failed",
                context={"table_name": table, "operation": operation, "statement": ddl},
                original_exception=e
            )

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    async def _write_inserts(self, connection: AsyncConnection, table: str, records: List[ProcessedRecord]) -> int:
        columns = records[0].columns()
        sql = self.dialect.build_insert(table, columns)
        rows = [value_row(record, columns) for record in records]
        return await self._execute_batch(connection, table, CdcOperation.INSERT, sql, rows)

    async def _write_updates(self, connection: AsyncConnection, table: str, records: List[ProcessedRecord]) -> int:
        key_fields = self.key_fields
        if not key_fields:
            logger.warning(
                f"No primary key fields configured, writing {len(records)} "
                f"UPDATE records to {table} as UPSERT"
            )
            return await self._write_upserts(connection, table, records)

        columns = records[0].columns()
        set_columns = [col for col in columns if col not in key_fields]
        if not set_columns:
            logger.info(f"Skipping {len(records)} UPDATE records for {table}: every column is a key column")
            return 0

        sql = self.dialect.build_update(table, columns, key_fields)
        rows = [
            value_row(record, set_columns) + self.key_values(record, key_fields)
            for record in records
        ]
        return await self._execute_batch(connection, table, CdcOperation.UPDATE, sql, rows)

    async def _write_upserts(self, connection: AsyncConnection, table: str, records: List[ProcessedRecord]) -> int:
        columns = records[0].columns()
        sql = self.dialect.build_upsert(table, columns, self.key_fields)
        rows = [value_row(record, columns) for record in records]
        return await self._execute_batch(connection, table, CdcOperation.UPSERT, sql, rows)

    async def _write_deletes(self, connection: AsyncConnection, table: str, records: List[ProcessedRecord]) -> int:
        key_fields = self.key_fields
        if not key_fields:
            logger.warning(
                f"No primary key fields configured, skipping {len(records)} DELETE records for {table}"
            )
            return 0

        sql = self.dialect.build_delete(table, key_fields)
        rows = [self.key_values(record, key_fields) for record in records]
        return await self._execute_batch(connection, table, CdcOperation.DELETE, sql, rows)

    def key_values(self, record: ProcessedRecord, key_fields: Sequence[str]) -> List[Any]:
        """
        Values for the key columns of one record.

        PK_MODE record_key looks at the key first and falls back to the
        value; record_value does the opposite. A scalar key stands for the
        single configured key field.
        """
        key_side = record.key_map()
        if not key_side and record.key is not None and len(key_fields) == 1:
            key_side = {key_fields[0]: record.key}
        value_side = record.value_map()

        if self.settings.PK_MODE == "record_value":
            primary, fallback = value_side, key_side
        else:
            primary, fallback = key_side, value_side

        return [
            primary[field] if primary.get(field) is not None else fallback.get(field)
            for field in key_fields
        ]

    async def _execute_batch(
        self,
        connection: AsyncConnection,
        table: str,
        operation: CdcOperation,
        sql: str,
        rows: List[List[Any]]
    ) -> int:
        """Run one statement over all rows, in order, BATCH_SIZE rows at a time"""
        statement, params = bind_positional(sql, rows)
        batch_size = max(1, self.settings.BATCH_SIZE)
        logger.debug(f"{operation.value} x{len(params)} on {table}: {sql}")

        for i in range(0, len(params), batch_size):
            chunk = params[i:i + batch_size]
            try:
                await connection.execute(statement, chunk)
            except SQLAlchemyError as e:
                raise wrap_error(f"{operation.value} failed", table, operation.value, len(chunk), e)

        return len(params)


def schema_sample(records: Sequence[ProcessedRecord]) -> ProcessedRecord:
    """First record of the group, or the first one with columns when it has none (e.g. a DELETE)"""
    for record in records:
        if record.columns():
            return record
    return records[0]


def value_row(record: ProcessedRecord, columns: Sequence[str]) -> List[Any]:
    values = record.value_map()
    return [values.get(col) for col in columns]


def wrap_error(message: str, table: str, operation: str, count: int, error: SQLAlchemyError) -> WriteError:
    """
    Lost connections are retryable; everything else fails the batch for good.

    OperationalError alone is not enough: drivers also raise it for missing
    tables, unknown columns and syntax errors.
    """
    context = {"table_name": table, "operation": operation, "records": count}
    if is_disconnect(error):
        return DatabaseConnectionError(message, context=context, original_exception=error)
    return WriteError(message, context=context, original_exception=error)


def is_disconnect(error: SQLAlchemyError) -> bool:
    """True when the driver lost or invalidated the connection"""
    if isinstance(error, InterfaceError):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated
