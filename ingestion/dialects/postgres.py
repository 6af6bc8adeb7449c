"""
PostgreSQL dialect.

Upserts use ``ON CONFLICT (keys) DO UPDATE``; unquoted identifiers are
folded to lower case by PostgreSQL, so catalog lookups are lower-cased too.
"""

from typing import Any, Dict, List, Optional, Sequence
from models.base import FieldType
from schemas.records import ProcessedRecord
from ingestion.dialects.base import Dialect, placeholders
from ingestion.dialects.generic import GenericDialect, MAX_INFERRED_STRING_LENGTH
import logging

logger = logging.getLogger(__name__)

POSTGRES_TYPES: Dict[FieldType, str] = {
    FieldType.INT8: "SMALLINT",
    FieldType.INT16: "SMALLINT",
    FieldType.INT32: "INT",
    FieldType.INT64: "BIGINT",
    FieldType.FLOAT32: "REAL",
    FieldType.FLOAT64: "DOUBLE PRECISION",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.STRING: "VARCHAR(255)",
    FieldType.BYTES: "BYTEA",
}
POSTGRES_DEFAULT_TYPE = "TEXT"


class PostgreSqlDialect(Dialect):
    """PostgreSQL-specific upsert, DDL, type mapping and identifier folding."""

    name = "PostgreSQL"

    def __init__(self):
        self.generic = GenericDialect(types=self)

    def build_insert(self, table: str, columns: Sequence[str]) -> str:
        return self.generic.build_insert(table, columns)

    def build_update(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        return self.generic.build_update(table, columns, key_columns)

    def build_upsert(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        if not key_columns:
            # ON CONFLICT needs a conflict target
            logger.warning(
                f"No key columns for UPSERT into {table}, falling back to INSERT. "
                f"Duplicate keys will fail the batch."
            )
            return self.generic.build_insert(table, columns)

        insert = (
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders(len(columns))}) "
            f"ON CONFLICT ({', '.join(key_columns)})"
        )

        non_key_columns = [col for col in columns if col not in key_columns]
        if not non_key_columns:
            # Every column is part of the key: nothing to update
            return f"{insert} DO NOTHING"

        updates = ", ".join(f"{col} = EXCLUDED.{col}" for col in non_key_columns)
        return f"{insert} DO UPDATE SET {updates}"

    def build_delete(self, table: str, key_columns: Sequence[str]) -> str:
        return self.generic.build_delete(table, key_columns)

    def build_create_table(self, table: str, sample: ProcessedRecord, key_columns: Sequence[str]) -> str:
        return self.generic.build_create_table(table, sample, key_columns)

    def build_alter(self, table: str, missing_columns: Sequence[str], sample: ProcessedRecord) -> List[str]:
        definitions = self.generic.column_definitions(sample, missing_columns)
        return self.generic.render_alter(table, definitions, combined=True)

    def column_type(self, field_type: Optional[FieldType]) -> str:
        return POSTGRES_TYPES.get(field_type, POSTGRES_DEFAULT_TYPE)

    def infer_column_type(self, value: Any) -> str:
        # bool before int: bool is a subclass of int
        if isinstance(value, bool):
            return "BOOLEAN"
        if isinstance(value, int):
            return "BIGINT"
        if isinstance(value, float):
            return "DOUBLE PRECISION"
        if isinstance(value, str):
            return "TEXT" if len(value) > MAX_INFERRED_STRING_LENGTH else "VARCHAR(1024)"
        if isinstance(value, (bytes, bytearray)):
            return "BYTEA"
        return POSTGRES_DEFAULT_TYPE

    def normalize_identifier_for_metadata(self, identifier: str) -> str:
        return identifier.lower() if identifier is not None else identifier
