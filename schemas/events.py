"""
Pydantic schemas for inbound CDC events and their record schemas
"""

from pydantic import BaseModel, Field, validator
from typing import Any, List, Mapping, Optional, Tuple
from models.base import FieldType


class SchemaField(BaseModel):
    """Named field of a struct schema"""
    name: str
    field_schema: "RecordSchema"

    class Config:
        frozen = True


class RecordSchema(BaseModel):
    """
    Schema attached to an event key or value.

    Only STRUCT schemas carry fields; their order is the column order used
    for DDL and DML.
    """
    type: FieldType
    fields: List[SchemaField] = Field(default_factory=list)
    optional: bool = True

    def field(self, name: str) -> Optional[SchemaField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    class Config:
        frozen = True


SchemaField.model_rebuild()


class RawEvent(BaseModel):
    """
    One inbound CDC event as delivered by the host.

    Headers keep their delivery order and may repeat; the last occurrence
    of a name wins on lookup.
    """
    topic: str
    partition: int
    offset: int
    key: Any = None
    value: Any = None
    headers: List[Tuple[str, Any]] = Field(default_factory=list)
    key_schema: Optional[RecordSchema] = None
    value_schema: Optional[RecordSchema] = None

    @validator("headers", pre=True)
    def coerce_headers(cls, v):
        """Accept a plain mapping as well as a sequence of pairs"""
        if v is None:
            return []
        if isinstance(v, Mapping):
            return list(v.items())
        return list(v)

    def header(self, name: str) -> Optional[str]:
        """Last value of a header as text (bytes decoded as UTF-8), or None"""
        for key, value in reversed(self.headers):
            if key != name:
                continue
            if value is None:
                return None
            if isinstance(value, (bytes, bytearray)):
                return bytes(value).decode("utf-8", errors="replace")
            return str(value)
        return None

    def header_map(self) -> dict:
        """Headers as a name -> text mapping, later duplicates overriding earlier"""
        return {key: self.header(key) for key, _ in self.headers}

    class Config:
        frozen = True
