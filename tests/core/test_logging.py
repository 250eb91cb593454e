"""Tests for structured logging configuration and context binding."""

import logging

import structlog

from lexispine.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


class TestLogging:
    def test_json_lines_carry_service_and_context(self, caplog):
        caplog.set_level(logging.DEBUG)
        configure_logging(level="DEBUG", json_format=True)
        with LogContext(batch_id="b-1"):
            get_logger("lexispine.test.json").info("planner.plan", steps=["g2p"])
        assert "planner.plan" in caplog.text
        assert '"service.name": "lexispine"' in caplog.text
        assert '"batch_id": "b-1"' in caplog.text

    def test_bind_and_clear(self):
        clear_context()
        bind_context(batch_id="b-1")
        assert structlog.contextvars.get_contextvars()["batch_id"] == "b-1"
        clear_context()
        assert "batch_id" not in structlog.contextvars.get_contextvars()

    def test_log_context_unbinds(self):
        clear_context()
        with LogContext(token="บ้าน"):
            assert structlog.contextvars.get_contextvars()["token"] == "บ้าน"
        assert "token" not in structlog.contextvars.get_contextvars()
