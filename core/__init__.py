"""
Core utilities and configuration for the CDC sink.

This package provides foundational components used throughout the sink:

Modules:
    config: Sink configuration and environment variable management
    database: Engine, connection and batch transaction scope
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import create_engine, open_connection, BatchTransaction
    from core.exceptions import WriteError, RetryableError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "Settings",
    "create_engine",
    "open_connection",
    "BatchTransaction",
    "setup_logging",
    # Exceptions
    "CdcSinkError",
    "TransformationError",
    "NormalizationError",
    "SerializationError",
    "RetryableError",
    "NonRetryableError",
    "WriteError",
    "SchemaEvolutionError",
    "QuarantineWriteError",
    "DatabaseConnectionError",
]
