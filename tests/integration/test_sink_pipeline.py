"""
Integration tests for the full sink pipeline against SQLite
"""

import json
import pytest
from sqlalchemy import inspect, text
from core.exceptions import RetryableError, WriteError
from ingestion.dialects import GenericDialect
from ingestion.runner import CdcSinkRunner


async def fetch(connection, sql):
    result = await connection.execute(text(sql))
    return [tuple(row) for row in result.fetchall()]


class TestSinkPipeline:
    """Test classify, write, quarantine and commit end to end"""

    @pytest.mark.asyncio
    async def test_sqlite_uses_generic_dialect(self, db_connection, sink_settings):
        runner = CdcSinkRunner(db_connection, sink_settings)
        assert isinstance(runner.dialect, GenericDialect)

    @pytest.mark.asyncio
    async def test_mixed_batch(self, db_connection, sink_settings, make_event):
        """Insert, update, delete and a rejected event in one batch"""
        runner = CdcSinkRunner(db_connection, sink_settings)

        events = [
            make_event(table_name="orders", entry_type="PT", value={"id": 1, "name": "a"}, offset=0),
            make_event(table_name="orders", entry_type="PT", value={"id": 2, "name": "b"}, offset=1),
            make_event(table_name="orders", entry_type="UP", key={"id": 1}, value={"id": 1, "name": "a2"}, offset=2),
            make_event(table_name="orders", entry_type="DL", key={"id": 2}, offset=3),
            make_event(table_name="orders", entry_type=None, value={"id": 3, "name": "c"}, offset=4),
        ]

        result = await runner.put(events)

        assert result == {
            "status": "partial_success",
            "records_received": 5,
            "records_written": 4,
            "records_quarantined": 1,
        }
        assert await fetch(db_connection, "SELECT id, name FROM orders ORDER BY id") == [(1, "a2")]

        quarantined = await fetch(
            db_connection,
            "SELECT topic, kafka_partition, kafka_offset, record_value, headers, "
            "error_reason, table_name, entry_type FROM streaming_corrupt_events"
        )
        assert len(quarantined) == 1
        topic, partition, offset, value, headers, reason, table_name, entry_type = quarantined[0]
        assert (topic, partition, offset) == ("journal.orders", 0, 4)
        assert json.loads(value) == {"id": 3, "name": "c"}
        assert json.loads(headers) == {"TableName": "orders"}
        assert reason == "Missing header: A_ENTTYP."
        assert table_name == "orders"
        assert entry_type is None

    @pytest.mark.asyncio
    async def test_empty_batch(self, db_connection, sink_settings):
        runner = CdcSinkRunner(db_connection, sink_settings)

        result = await runner.put([])

        assert result["records_received"] == 0
        has_table = await db_connection.run_sync(lambda conn: inspect(conn).has_table("streaming_corrupt_events"))
        assert not has_table

    @pytest.mark.asyncio
    async def test_consecutive_batches(self, db_connection, sink_settings, make_event):
        runner = CdcSinkRunner(db_connection, sink_settings)

        await runner.put([make_event(table_name="orders", value={"id": 1, "name": "a"}, offset=0)])
        await runner.put([make_event(table_name="orders", value={"id": 2, "name": "b"}, offset=1)])

        assert await fetch(db_connection, "SELECT id, name FROM orders ORDER BY id") == [(1, "a"), (2, "b")]

    @pytest.mark.asyncio
    async def test_write_failure_rolls_back_batch(self, db_connection, sink_settings, make_event):
        runner = CdcSinkRunner(db_connection, sink_settings)
        await runner.put([make_event(table_name="orders", value={"id": 1, "name": "a"}, offset=0)])

        # id=1 again violates the primary key after id=2 was inserted
        with pytest.raises(WriteError) as exc_info:
            await runner.put([
                make_event(table_name="orders", value={"id": 2, "name": "b"}, offset=1),
                make_event(table_name="orders", value={"id": 1, "name": "dup"}, offset=2),
            ])

        assert not isinstance(exc_info.value, RetryableError)
        assert await fetch(db_connection, "SELECT id, name FROM orders ORDER BY id") == [(1, "a")]

    @pytest.mark.asyncio
    async def test_auto_evolve_adds_columns(self, db_connection, sink_settings, make_event):
        runner = CdcSinkRunner(db_connection, sink_settings)

        await runner.put([make_event(table_name="orders", value={"id": 1, "name": "a"}, offset=0)])
        await runner.put([make_event(table_name="orders", value={"id": 2, "name": "b", "note": "new"}, offset=1)])

        columns = await db_connection.run_sync(lambda conn: inspect(conn).get_columns("orders"))
        assert [col["name"] for col in columns] == ["id", "name", "note"]
        assert await fetch(db_connection, "SELECT id, note FROM orders ORDER BY id") == [(1, None), (2, "new")]

    @pytest.mark.asyncio
    async def test_delete_without_key_fields_skipped(self, db_connection, sink_settings, make_event):
        """Neither written nor quarantined, and the batch still succeeds"""
        sink_settings.PK_FIELDS = ""
        runner = CdcSinkRunner(db_connection, sink_settings)

        await runner.put([make_event(table_name="orders", value={"id": 1, "name": "a"}, offset=0)])
        result = await runner.put([make_event(table_name="orders", entry_type="DL", key={"id": 1}, offset=1)])

        assert result["status"] == "success"
        assert result["records_written"] == 0
        assert result["records_quarantined"] == 0
        assert await fetch(db_connection, "SELECT id, name FROM orders") == [(1, "a")]

    @pytest.mark.asyncio
    async def test_table_name_format(self, db_connection, sink_settings, make_event):
        sink_settings.TABLE_NAME_FORMAT = "cdc_${TableName}"
        runner = CdcSinkRunner(db_connection, sink_settings)

        await runner.put([make_event(table_name="orders", value={"id": 1, "name": "a"}, offset=0)])

        assert await fetch(db_connection, "SELECT id, name FROM cdc_orders") == [(1, "a")]

    @pytest.mark.asyncio
    async def test_unserializable_rejection_does_not_abort_batch(self, db_connection, sink_settings, make_event):
        """Only the record that cannot be rendered is dropped from the quarantine write"""
        runner = CdcSinkRunner(db_connection, sink_settings)

        nested = {}
        inner = nested
        for _ in range(5000):
            inner["n"] = {}
            inner = inner["n"]

        result = await runner.put([
            make_event(table_name="orders", entry_type="XX", value={"id": 1}, offset=0),
            make_event(table_name="orders", entry_type="XX", value=nested, offset=1),
            make_event(table_name="orders", entry_type="PT", value={"id": 2, "name": "b"}, offset=2),
        ])

        assert result["records_written"] == 1
        assert result["records_quarantined"] == 1
        assert await fetch(db_connection, "SELECT id, name FROM orders") == [(2, "b")]
        assert await fetch(db_connection, "SELECT kafka_offset FROM streaming_corrupt_events") == [(0,)]

    @pytest.mark.asyncio
    async def test_missing_table_is_not_retryable(self, db_connection, sink_settings, make_event):
        """A schema mismatch fails the same way on redelivery"""
        sink_settings.AUTO_CREATE = False
        sink_settings.AUTO_EVOLVE = False
        runner = CdcSinkRunner(db_connection, sink_settings)

        with pytest.raises(WriteError) as exc_info:
            await runner.put([make_event(table_name="nosuch", value={"id": 1}, offset=0)])

        assert not isinstance(exc_info.value, RetryableError)

    @pytest.mark.asyncio
    async def test_rejection_without_headers_stores_empty_map(self, db_connection, sink_settings, make_event):
        runner = CdcSinkRunner(db_connection, sink_settings)

        await runner.put([make_event(headers=[], value={"id": 1}, offset=0)])

        rows = await fetch(db_connection, "SELECT headers, table_name FROM streaming_corrupt_events")
        assert rows == [("{}", None)]
