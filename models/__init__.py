"""
SQLAlchemy Core definitions for tables owned by the sink.

Models:
    base: Shared metadata and enums (CdcOperation, FieldType)
    quarantine: Corrupt events table definition

Target tables are not modeled here: their DDL is generated by the
dialects from the records being written.

Usage:
    from models.base import CdcOperation, FieldType
    from models.quarantine import build_quarantine_table
"""

__all__ = [
    "metadata",
    "CdcOperation",
    "FieldType",
    "build_quarantine_table",
]
