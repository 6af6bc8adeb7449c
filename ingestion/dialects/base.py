"""
Dialect interface for target database families.

A dialect turns table/column lists into SQL text and maps abstract field
types to native column types. Statements use ``?`` positional placeholders
only; identifiers are emitted unquoted.

Concrete dialects implement every operation, delegating explicitly to a
composed GenericDialect for the ones whose SQL does not differ.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence
from models.base import FieldType
from schemas.records import ProcessedRecord


class Dialect(ABC):
    """Capability interface for SQL generation against one database family."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable dialect name"""
        pass

    @abstractmethod
    def build_insert(self, table: str, columns: Sequence[str]) -> str:
        """INSERT with one placeholder per column, in column order"""
        pass

    @abstractmethod
    def build_update(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        """UPDATE setting the non-key columns, WHERE over the key columns"""
        pass

    @abstractmethod
    def build_upsert(self, table: str, columns: Sequence[str], key_columns: Sequence[str]) -> str:
        """INSERT that resolves key conflicts natively; parameters in INSERT order"""
        pass

    @abstractmethod
    def build_delete(self, table: str, key_columns: Sequence[str]) -> str:
        """DELETE with a WHERE conjunction over the key columns"""
        pass

    @abstractmethod
    def build_create_table(self, table: str, sample: ProcessedRecord, key_columns: Sequence[str]) -> str:
        """
        CREATE TABLE derived from a sample record.

        Columns come from the value schema when one is attached, otherwise
        from the keys of the structured value.
        """
        pass

    @abstractmethod
    def build_alter(self, table: str, missing_columns: Sequence[str], sample: ProcessedRecord) -> List[str]:
        """ALTER TABLE statements adding each missing column"""
        pass

    @abstractmethod
    def column_type(self, field_type: Optional[FieldType]) -> str:
        """Native column type for an abstract field type (None = unknown)"""
        pass

    @abstractmethod
    def infer_column_type(self, value: Any) -> str:
        """Native column type for a schema-less sample value"""
        pass

    @abstractmethod
    def normalize_identifier_for_metadata(self, identifier: str) -> str:
        """Identifier as the database stores it in its catalog"""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


def infer_field_type(value: Any) -> Optional[FieldType]:
    """Abstract type of a Python value, or None if it cannot be told"""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, int):
        return FieldType.INT64
    if isinstance(value, float):
        return FieldType.FLOAT64
    if isinstance(value, (bytes, bytearray)):
        return FieldType.BYTES
    if isinstance(value, str):
        return FieldType.STRING
    if isinstance(value, Mapping):
        return FieldType.MAP
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY
    return None


def placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


def predicate(columns: Sequence[str], separator: str) -> str:
    return separator.join(f"{col} = ?" for col in columns)
