"""
Unit tests for structured JSON logging.
"""

from __future__ import annotations

import json
import logging

import pytest

from memory_search.core.logging import (
    CorrelationIdFilter,
    JSONFormatter,
    clear_correlation_id,
    get_correlation_id,
    get_log_level_from_env,
    set_correlation_id,
    setup_structured_logging,
)


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="memory_search.search.orchestrator",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """One JSON object per record."""

    def test_fields(self) -> None:
        record = _record()
        CorrelationIdFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["service"] == "memory_search"
        assert data["message"] == "hello"
        assert data["correlation_id"] == "-"

    def test_extra_fields_kept_as_context(self) -> None:
        record = _record()
        record.channel = "vector"
        record.error_type = "CapabilityMissingError"

        data = json.loads(JSONFormatter().format(record))

        assert data["context"] == {"channel": "vector", "error_type": "CapabilityMissingError"}
        assert data["logger"] == "memory_search.search.orchestrator"

    def test_correlation_id_from_context(self) -> None:
        set_correlation_id("req-42")
        try:
            record = _record()
            CorrelationIdFilter().filter(record)
            data = json.loads(JSONFormatter().format(record))
        finally:
            clear_correlation_id()

        assert data["correlation_id"] == "req-42"
        assert get_correlation_id() is None


class TestSetup:
    """Logger configuration."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("nonsense", logging.INFO)],
    )
    def test_level_from_env(
        self, monkeypatch: pytest.MonkeyPatch, value: str, expected: int
    ) -> None:
        monkeypatch.setenv("MEMORY_SEARCH_LOG_LEVEL", value)

        assert get_log_level_from_env() == expected

    def test_package_logger_configured(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "app.log"

        logger = setup_structured_logging(log_file_path=str(log_file), log_level=logging.INFO)
        logging.getLogger("memory_search.search.vector_channel").warning("probe failed")
        for handler in logger.handlers:
            handler.flush()

        assert logger.name == "memory_search"
        assert logger.propagate is False
        assert len(logger.handlers) == 2
        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "probe failed"

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.propagate = True
