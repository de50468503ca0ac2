"""
Unit tests for core.logger module.

Tests:
- format_kv_pairs() quoting, escaping and truncation
- StructuredFormatter output for Logger and plain logging records
- Logger levels, bound context, JSON mode and truncation
"""

import json
import logging

import pytest

from nostrkit.core.logger import Logger, StructuredFormatter, format_kv_pairs


class TestFormatKvPairs:
    """format_kv_pairs()."""

    def test_empty(self):
        assert format_kv_pairs({}) == ""

    def test_simple(self):
        assert format_kv_pairs({"relay": "wss://a.io", "count": 3}) == " relay=wss://a.io count=3"

    def test_quotes_values_with_spaces(self):
        assert format_kv_pairs({"reason": "not open"}) == ' reason="not open"'

    def test_escapes_quotes(self):
        assert format_kv_pairs({"msg": 'say "hi"'}) == ' msg="say \\"hi\\""'

    def test_quotes_empty(self):
        assert format_kv_pairs({"reason": ""}) == ' reason=""'

    def test_truncates(self):
        result = format_kv_pairs({"data": "x" * 20}, max_value_length=5)
        assert result == " data=xxxxx...<truncated 15 chars>"

    def test_no_truncation(self):
        assert format_kv_pairs({"data": "x" * 20}, max_value_length=None) == " data=" + "x" * 20

    def test_custom_prefix(self):
        assert format_kv_pairs({"a": 1}, prefix="") == "a=1"


class TestStructuredFormatter:
    """StructuredFormatter.format()."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("relay_pool", logging.INFO, __file__, 1, "relay_connected", (), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_plain_record(self):
        assert StructuredFormatter().format(self._record()) == "info relay_pool relay_connected"

    def test_structured_record(self):
        record = self._record(structured_kv={"relay": "wss://a.io"})
        assert StructuredFormatter().format(record) == "info relay_pool relay_connected relay=wss://a.io"


class TestLogger:
    """Logger key=value mode."""

    def test_info_attaches_fields(self, caplog):
        logger = Logger("test_logger_info")
        with caplog.at_level(logging.INFO, logger="test_logger_info"):
            logger.info("relay_connected", relay="wss://a.io")
        record = caplog.records[-1]
        assert record.getMessage() == "relay_connected"
        assert record.structured_kv == {"relay": "wss://a.io"}

    @pytest.mark.parametrize(
        ("method", "level"),
        [("debug", logging.DEBUG), ("info", logging.INFO), ("warning", logging.WARNING), ("error", logging.ERROR)],
    )
    def test_levels(self, caplog, method, level):
        logger = Logger("test_logger_levels")
        with caplog.at_level(logging.DEBUG, logger="test_logger_levels"):
            getattr(logger, method)("event_name")
        assert caplog.records[-1].levelno == level

    def test_disabled_level_skipped(self, caplog):
        logger = Logger("test_logger_disabled")
        with caplog.at_level(logging.WARNING, logger="test_logger_disabled"):
            logger.debug("hidden")
        assert not [r for r in caplog.records if r.name == "test_logger_disabled"]

    def test_bind_merges_context(self, caplog):
        logger = Logger("test_logger_bind").bind(relay="wss://a.io")
        with caplog.at_level(logging.INFO, logger="test_logger_bind"):
            logger.info("send_skipped", reason="closed")
        assert caplog.records[-1].structured_kv == {"relay": "wss://a.io", "reason": "closed"}

    def test_bind_does_not_mutate_parent(self, caplog):
        parent = Logger("test_logger_parent")
        parent.bind(relay="wss://a.io")
        with caplog.at_level(logging.INFO, logger="test_logger_parent"):
            parent.info("plain")
        assert not getattr(caplog.records[-1], "structured_kv", {})

    def test_values_truncated(self, caplog):
        logger = Logger("test_logger_truncate", max_value_length=4)
        with caplog.at_level(logging.INFO, logger="test_logger_truncate"):
            logger.info("notice", message="abcdefgh")
        assert caplog.records[-1].structured_kv["message"].startswith("abcd...")

    def test_exception_includes_traceback(self, caplog):
        logger = Logger("test_logger_exc")
        with caplog.at_level(logging.ERROR, logger="test_logger_exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("failed")
        assert caplog.records[-1].exc_info is not None

    def test_name(self):
        assert Logger("relay_pool").name == "relay_pool"


class TestLoggerJson:
    """Logger JSON mode."""

    def test_json_output(self, caplog):
        logger = Logger("test_logger_json", json_output=True)
        with caplog.at_level(logging.INFO, logger="test_logger_json"):
            logger.info("relay_connected", relay="wss://a.io")
        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["message"] == "relay_connected"
        assert payload["level"] == "info"
        assert payload["logger"] == "test_logger_json"
        assert payload["relay"] == "wss://a.io"
        assert "timestamp" in payload
