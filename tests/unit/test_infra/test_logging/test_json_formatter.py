"""Tests for JSON log formatting and logging setup."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from relay_service.core.settings import LoggingSettings
from relay_service.infra.logging import (
    JSONFormatter,
    configure_logging,
    reset_logging_state,
    setup_logging,
)


def make_record(msg: str = "Outbox record exceeded max retries", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="relay_service.infra.events.outbox.processor",
        level=logging.CRITICAL,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_core_fields_and_extras(self) -> None:
        formatter = JSONFormatter(static={"service": "relay-service"})

        data = json.loads(formatter.format(make_record(record_id="abc", retry_count=3)))

        assert data["level"] == "CRITICAL"
        assert data["logger"] == "relay_service.infra.events.outbox.processor"
        assert data["message"] == "Outbox record exceeded max retries"
        assert data["service"] == "relay-service"
        assert data["record_id"] == "abc"
        assert data["retry_count"] == 3
        assert data["timestamp"].endswith("Z")

    def test_exception_stays_on_one_line(self) -> None:
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        output = formatter.format(record)

        assert "\n" not in output
        assert "ValueError: boom" in json.loads(output)["exception"]

    def test_unserializable_extra_uses_str(self) -> None:
        formatter = JSONFormatter()

        data = json.loads(formatter.format(make_record(payload=object())))

        assert data["payload"].startswith("<object object")


class TestLoggingSetup:
    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        reset_logging_state()
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)
        reset_logging_state()

    def test_configure_json_console(self) -> None:
        configure_logging(
            "DEBUG",
            service_name="relay-test",
            json_logs=True,
            capture_warnings=False,
        )

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, JSONFormatter) for h in root.handlers)
        assert logging.getLogger("aiormq").level == logging.WARNING

    def test_file_handler(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "relay.jsonl"

        configure_logging(
            "INFO",
            json_logs=True,
            console_enabled=False,
            file_path=log_file,
            capture_warnings=False,
        )
        logging.getLogger("relay_service.test").info("hello", extra={"record_id": "r1"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["record_id"] == "r1"

    def test_setup_logging_is_idempotent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(
            "relay_service.infra.logging.config.configure_logging",
            lambda **kwargs: calls.append(kwargs),
        )
        settings = LoggingSettings(level="WARNING", json_logs=False)

        setup_logging(settings)
        setup_logging(settings)
        setup_logging(settings, force=True)

        assert len(calls) == 2
        assert calls[0]["log_level"] == "WARNING"
        assert calls[0]["json_logs"] is False
