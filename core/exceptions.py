"""
Custom exceptions for the CDC sink with structured error context.

Per-event problems (missing headers, unknown entry types, missing key or
value) are not exceptions: the validator turns them into rejected records
that are routed to the quarantine table. The classes below cover what is
left: failures that are contained inside one component, and failures that
abort a whole batch.

Exception Hierarchy:
    CdcSinkError (base)
    ├── TransformationError
    │   ├── NormalizationError      (timestamp unparseable, caught -> None)
    │   └── SerializationError      (quarantine row dropped, batch continues)
    ├── WriteError                  (batch aborted, caller rolls back)
    │   ├── SchemaEvolutionError
    │   └── QuarantineWriteError
    └── RetryableError / NonRetryableError (mixins)
        └── DatabaseConnectionError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class CdcSinkError(Exception):
    """
    Base exception for all sink errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (table, operation, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(CdcSinkError):
    """Base exception for per-record transformation failures."""
    pass


class NormalizationError(TransformationError):
    """
    Raised when an A_TIMSTAMP value cannot be parsed.

    Never escapes the timestamp normalizer: the timestamp is advisory and
    an unparseable one is reported as absent.

    Context should include:
        - raw_timestamp: The value that failed to parse
    """
    pass


class SerializationError(TransformationError):
    """
    Raised when a rejected event cannot be rendered for the quarantine table.

    Context should include:
        - topic / partition / offset: Coordinates of the event
        - field: Which part of the event failed (key, value, headers)
    """
    pass


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(CdcSinkError):
    """
    Mixin for errors the host may retry by redelivering the same batch.

    Use this for transient errors like:
    - Lost database connections
    - Connection pool exhaustion
    """
    pass


class NonRetryableError(CdcSinkError):
    """
    Mixin for errors that will fail again on redelivery.

    Use this for permanent errors like:
    - Constraint violations
    - DDL the target database rejects
    """
    pass


# ============================================================================
# Write Errors
# ============================================================================

class WriteError(CdcSinkError):
    """
    Exception raised when a batched statement fails.

    Aborts the in-flight batch; the caller rolls back the shared transaction.

    Context should include:
        - table_name: Name of the target table
        - operation: INSERT, UPDATE, UPSERT, DELETE, CREATE or ALTER
        - records: Number of records in the failed statement
    """
    pass


class SchemaEvolutionError(NonRetryableError, WriteError):
    """Auto-create or auto-evolve DDL was rejected by the target database."""
    pass


class QuarantineWriteError(WriteError):
    """The quarantine table could not be created or written."""
    pass


class DatabaseConnectionError(RetryableError, WriteError):
    """Database connectivity errors that should be retried."""
    pass
