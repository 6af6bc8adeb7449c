"""
Unit tests for logging configuration
"""

import json
import logging
from core.exceptions import WriteError
from core.logging import NOISY_LOGGERS, ErrorContextFilter, setup_logging


def make_log_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("ingestion.runner", logging.ERROR, __file__, 1, "Batch rolled back", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestErrorContextFilter:
    """Test rendering of batch failure context"""

    def test_record_without_context(self):
        record = make_log_record()

        assert ErrorContextFilter().filter(record) is True
        assert record.context_suffix == ""

    def test_record_with_error_context(self):
        error = WriteError("INSERT failed", context={"table_name": "orders", "records": 2})
        record = make_log_record(error_context=error.to_dict())

        ErrorContextFilter().filter(record)

        assert record.context_suffix.startswith(" | ")
        rendered = json.loads(record.context_suffix[3:])
        assert rendered["error_type"] == "WriteError"
        assert rendered["context"] == {"table_name": "orders", "records": 2}

    def test_formatted_line_includes_context(self):
        record = make_log_record(error_context={"records": 2})
        ErrorContextFilter().filter(record)

        line = logging.Formatter("%(message)s%(context_suffix)s").format(record)

        assert line == 'Batch rolled back | {"records": 2}'


class TestSetupLogging:
    """Test logger levels after setup"""

    def test_driver_loggers_quieted_at_debug(self):
        setup_logging("debug")

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
