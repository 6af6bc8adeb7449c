"""
CDC sink pipeline components.

This package contains all components that turn inbound CDC events into
target table writes:

Modules:
    runner: Batch orchestrator that classifies, writes and commits one batch

Subpackages:
    transformers: Entry type mapping, timestamp normalization and validation
    dialects: SQL generation per target database family
    loaders: Table writer and quarantine writer

Architecture:
    Each batch goes through three steps inside one transaction:

    1. Classify - Every event becomes a processed or a rejected record
    2. Write - Processed records are written per table and operation
    3. Quarantine - Rejected records go to the corrupt events table

    Rejections never fail a batch; a failed write rolls back all of it.

Usage:
    from ingestion.runner import CdcSinkRunner
    from schemas.events import RawEvent

Example:
    async with open_connection(engine) as connection:
        runner = CdcSinkRunner(connection, settings)
        result = await runner.put(events)

    print(f"Wrote {result['records_written']} records")

Error Handling:
    Write failures surface as core.exceptions.WriteError subclasses;
    DatabaseConnectionError is retryable by redelivering the batch.
"""

__all__ = [
    "CdcSinkRunner",
]
