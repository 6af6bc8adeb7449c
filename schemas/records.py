"""
Pydantic schemas for classified records: processed (to write) and rejected (to quarantine)
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Mapping, Optional, Union
from models.base import CdcOperation, FieldType
from schemas.events import RawEvent, RecordSchema


def field_names(data: Any, schema: Optional[RecordSchema]) -> List[str]:
    """Column names of a structured value, in schema order when a struct schema is known"""
    if not isinstance(data, Mapping):
        return []
    if schema is not None and schema.type == FieldType.STRUCT and schema.fields:
        return schema.field_names()
    return [str(k) for k in data.keys()]


def field_map(data: Any, schema: Optional[RecordSchema]) -> Dict[str, Any]:
    """Structured value as an ordered column -> value dict; empty for scalars"""
    if not isinstance(data, Mapping):
        return {}
    return {name: data.get(name) for name in field_names(data, schema)}


class ProcessedRecord(BaseModel):
    """
    A validated event ready to be written to its target table.

    Ensures:
    - target_table is never empty
    - operation is one of the four CDC operations
    """
    target_table: str = Field(..., min_length=1)
    operation: CdcOperation
    key: Any = None
    value: Any = None
    key_schema: Optional[RecordSchema] = None
    value_schema: Optional[RecordSchema] = None
    timestamp: Optional[str] = None  # ISO-8601 with offset, None when absent/unparseable

    def columns(self) -> List[str]:
        return field_names(self.value, self.value_schema)

    def value_map(self) -> Dict[str, Any]:
        return field_map(self.value, self.value_schema)

    def key_map(self) -> Dict[str, Any]:
        return field_map(self.key, self.key_schema)

    class Config:
        frozen = True


class RejectedRecord(BaseModel):
    """An event routed to the quarantine table, with the reason it was rejected"""
    event: RawEvent
    reason: str = Field(..., min_length=1)

    class Config:
        frozen = True


ValidationOutcome = Union[ProcessedRecord, RejectedRecord]
