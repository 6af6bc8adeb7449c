"""
Pydantic schemas for CDC events and classified records.

Schemas:
    events: Inbound events (RawEvent) and their key/value schemas
    records: Validation outcomes (ProcessedRecord, RejectedRecord)

Usage:
    from schemas.events import RawEvent, RecordSchema
    from schemas.records import ProcessedRecord, RejectedRecord
"""

__all__ = [
    "RawEvent",
    "RecordSchema",
    "SchemaField",
    "ProcessedRecord",
    "RejectedRecord",
    "ValidationOutcome",
]
