"""
Select the dialect for a target connection
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncConnection
from ingestion.dialects.base import Dialect
from ingestion.dialects.generic import GenericDialect
from ingestion.dialects.mysql import MySqlDialect
from ingestion.dialects.postgres import PostgreSqlDialect
import logging

logger = logging.getLogger(__name__)

# SQLAlchemy dialect name -> dialect class
DIALECTS = {
    "mysql": MySqlDialect,
    "mariadb": MySqlDialect,
    "postgresql": PostgreSqlDialect,
}


def dialect_for_name(product_name: Optional[str]) -> Dialect:
    """Dialect for a database product name; GenericDialect when unrecognized"""
    name = (product_name or "").strip().lower()
    dialect_class = DIALECTS.get(name)

    if dialect_class is None:
        logger.warning(f"No dedicated dialect for database '{product_name}', using generic SQL")
        return GenericDialect()

    dialect = dialect_class()
    logger.info(f"Using {dialect.name} dialect")
    return dialect


def dialect_for_connection(connection: AsyncConnection) -> Dialect:
    return dialect_for_name(connection.dialect.name)
