from sqlalchemy import (
    Table, Column, MetaData, String, Integer, BigInteger, Text, DateTime, Index
)
from sqlalchemy.dialects.mysql import LONGTEXT
from sqlalchemy.sql import func
from typing import Optional
from models.base import metadata as default_metadata

# VARCHAR width of error_reason; longer reasons are truncated with "..."
ERROR_REASON_MAX_LENGTH = 1000


def build_quarantine_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    """
    Build the table holding events that failed validation.

    Purpose:
    - Offline inspection of malformed CDC events
    - Replay after the upstream problem is fixed

    Design Decisions:
    - Kafka coordinates are stored so the event can be found at the source
    - Key, value and headers are stored as serialized text, never parsed
    - TableName / A_ENTTYP are copied out when present for easy filtering
    """
    metadata = metadata if metadata is not None else default_metadata
    if name in metadata.tables:
        return metadata.tables[name]

    return Table(
        name,
        metadata,
        # SQLite only autoincrements INTEGER PRIMARY KEY
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),

        # Source coordinates
        Column("topic", String(255), nullable=False),
        Column("kafka_partition", Integer, nullable=False),
        Column("kafka_offset", BigInteger, nullable=False),

        # Serialized event
        Column("record_key", Text, nullable=True),
        Column("record_value", Text().with_variant(LONGTEXT, "mysql"), nullable=True),
        Column("headers", Text, nullable=True),

        # Why it was quarantined
        Column("error_reason", String(ERROR_REASON_MAX_LENGTH), nullable=False),
        Column("table_name", String(255), nullable=True),
        Column("entry_type", String(10), nullable=True),

        Column("created_at", DateTime, nullable=False, server_default=func.now()),

        Index(f"idx_{name}_topic_partition_offset", "topic", "kafka_partition", "kafka_offset"),
        Index(f"idx_{name}_table_name", "table_name"),
        Index(f"idx_{name}_created_at", "created_at"),
    )
