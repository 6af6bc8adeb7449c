"""
Generic dialect for databases without a dedicated implementation.

Also the default strategy every concrete dialect composes: it produces
plain ANSI-style DML/DDL and takes its type mapping from ``types`` so a
composing dialect can reuse the DDL rendering with its own native types.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from models.base import FieldType
from schemas.records import ProcessedRecord
from ingestion.dialects.base import Dialect, infer_field_type, placeholders, predicate
import logging

logger = logging.getLogger(__name__)

# Strings longer than this do not fit the default VARCHAR width
MAX_INFERRED_STRING_LENGTH = 255

GENERIC_TYPES: Dict[FieldType, str] = {
    FieldType.INT8: "INTEGER",
    FieldType.INT16: "INTEGER",
    FieldType.INT32: "INTEGER",
    FieldType.INT64: "BIGINT",
    FieldType.FLOAT32: "FLOAT",
    FieldType.FLOAT64: "DOUBLE",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.STRING: "VARCHAR(255)",
}
GENERIC_DEFAULT_TYPE = "VARCHAR(1024)"


class GenericDialect(Dialect):
    """
    Basic SQL that most databases accept.

    Has no native upsert: UPSERT degrades to a plain INSERT, which fails
    on duplicate keys.
    """

    name = "Generic"

    def __init__(self, types: Optional[Dialect] = None):
        # Dialect whose column_type/infer_column_type the DDL uses
        self.types = types or self

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def build_insert(self, table: str, columns: Sequence[str]) -> str:
        return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders(len(columns))})"

    def build_update(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        non_key_columns = [col for col in columns if col not in key_columns]
        return (
            f"UPDATE {table} SET {predicate(non_key_columns, ', ')} "
            f"WHERE {predicate(key_columns, ' AND ')}"
        )

    def build_upsert(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        logger.warning(
            "UPSERT not supported by the generic dialect, falling back to INSERT. "
            "Duplicate keys will fail the batch."
        )
        return self.build_insert(table, columns)

    def build_delete(self, table: str, key_columns: Sequence[str]) -> str:
        return f"DELETE FROM {table} WHERE {predicate(key_columns, ' AND ')}"

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def column_definitions(
        self,
        sample: ProcessedRecord,
        columns: Optional[Sequence[str]] = None
    ) -> List[Tuple[str, str]]:
        """
        (column, native type) pairs for a sample record.

        Types come from the value schema field when there is one, otherwise
        they are inferred from the sample value (wide default when None).
        """
        if columns is None:
            columns = sample.columns()
        values = sample.value_map()

        definitions = []
        for col in columns:
            field = sample.value_schema.field(col) if sample.value_schema is not None else None
            if field is not None:
                col_type = self.types.column_type(field.field_schema.type)
            else:
                col_type = self.types.infer_column_type(values.get(col))
            definitions.append((col, col_type))
        return definitions

    def render_create_table(
        self,
        table: str,
        definitions: Sequence[Tuple[str, str]],
        key_columns: Sequence[str]
    ) -> str:
        col_defs = [f"{col} {col_type}" for col, col_type in definitions]

        names = {col for col, _ in definitions}
        primary_keys = [col for col in key_columns if col in names]
        if primary_keys:
            col_defs.append(f"PRIMARY KEY ({', '.join(primary_keys)})")

        return f"CREATE TABLE {table} ({', '.join(col_defs)})"

    def render_alter(
        self,
        table: str,
        definitions: Sequence[Tuple[str, str]],
        combined: bool = False
    ) -> List[str]:
        """One ALTER per column, or a single ALTER with several ADD clauses"""
        if not definitions:
            return []
        clauses = [f"ADD COLUMN {col} {col_type}" for col, col_type in definitions]
        if combined:
            return [f"ALTER TABLE {table} {', '.join(clauses)}"]
        return [f"ALTER TABLE {table} {clause}" for clause in clauses]

    def build_create_table(self, table: str, sample: ProcessedRecord, key_columns: Sequence[str]) -> str:
        return self.render_create_table(table, self.column_definitions(sample), key_columns)

    def build_alter(self, table: str, missing_columns: Sequence[str], sample: ProcessedRecord) -> List[str]:
        return self.render_alter(table, self.column_definitions(sample, missing_columns))

    # ------------------------------------------------------------------
    # Types and identifiers
    # ------------------------------------------------------------------

    def column_type(self, field_type: Optional[FieldType]) -> str:
        return GENERIC_TYPES.get(field_type, GENERIC_DEFAULT_TYPE)

    def infer_column_type(self, value: Any) -> str:
        field_type = infer_field_type(value)
        if field_type == FieldType.STRING and len(value) > MAX_INFERRED_STRING_LENGTH:
            return self.types.column_type(None)
        return self.types.column_type(field_type)

    def normalize_identifier_for_metadata(self, identifier: str) -> str:
        return identifier
