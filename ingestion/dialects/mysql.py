"""
MySQL dialect.

Upserts use ``ON DUPLICATE KEY UPDATE``, which resolves conflicts on any
unique key of the table, so no key columns are needed in the statement.
"""

from typing import Any, Dict, List, Optional, Sequence
from models.base import FieldType
from schemas.records import ProcessedRecord
from ingestion.dialects.base import Dialect, placeholders
from ingestion.dialects.generic import GenericDialect

MYSQL_TYPES: Dict[FieldType, str] = {
    FieldType.INT8: "TINYINT",
    FieldType.INT16: "SMALLINT",
    FieldType.INT32: "INT",
    FieldType.INT64: "BIGINT",
    FieldType.FLOAT32: "FLOAT",
    FieldType.FLOAT64: "DOUBLE",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.STRING: "VARCHAR(255)",
    FieldType.BYTES: "VARBINARY(255)",
}
MYSQL_DEFAULT_TYPE = "TEXT"

# TEXT columns cannot be part of a primary key without a prefix length
MYSQL_KEY_TEXT_TYPE = "VARCHAR(255)"


class MySqlDialect(Dialect):
    """MySQL-specific upsert, DDL and type mapping."""

    name = "MySQL"

    def __init__(self):
        self.generic = GenericDialect(types=self)

    def build_insert(self, table: str, columns: Sequence[str]) -> str:
        return self.generic.build_insert(table, columns)

    def build_update(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        return self.generic.build_update(table, columns, key_columns)

    def build_upsert(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        updates = ", ".join(f"{col} = VALUES({col})" for col in columns)
        return (
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders(len(columns))}) "
            f"ON DUPLICATE KEY UPDATE {updates}"
        )

    def build_delete(self, table: str, key_columns: Sequence[str]) -> str:
        return self.generic.build_delete(table, key_columns)

    def build_create_table(self, table: str, sample: ProcessedRecord, key_columns: Sequence[str]) -> str:
        definitions = [
            (col, MYSQL_KEY_TEXT_TYPE if col in key_columns and col_type == MYSQL_DEFAULT_TYPE else col_type)
            for col, col_type in self.generic.column_definitions(sample)
        ]
        return self.generic.render_create_table(table, definitions, key_columns)

    def build_alter(self, table: str, missing_columns: Sequence[str], sample: ProcessedRecord) -> List[str]:
        definitions = self.generic.column_definitions(sample, missing_columns)
        return self.generic.render_alter(table, definitions, combined=True)

    def column_type(self, field_type: Optional[FieldType]) -> str:
        return MYSQL_TYPES.get(field_type, MYSQL_DEFAULT_TYPE)

    def infer_column_type(self, value: Any) -> str:
        return self.generic.infer_column_type(value)

    def normalize_identifier_for_metadata(self, identifier: str) -> str:
        return self.generic.normalize_identifier_for_metadata(identifier)
