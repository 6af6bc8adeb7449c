from ingestion.dialects.base import Dialect
from ingestion.dialects.generic import GenericDialect
from ingestion.dialects.mysql import MySqlDialect
from ingestion.dialects.postgres import PostgreSqlDialect
from ingestion.dialects.factory import dialect_for_connection, dialect_for_name

__all__ = [
    "Dialect",
    "GenericDialect",
    "MySqlDialect",
    "PostgreSqlDialect",
    "dialect_for_connection",
    "dialect_for_name",
]
