# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Tests for structured logging"""

import json
import logging
import sys

from mcp_hello.core.config import Config
from mcp_hello.core.logging import JSONFormatter, configure_logging, get_logger, get_service_logger, log_event


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("mcp_hello.test", logging.INFO, __file__, 1, "Session created", None, None)
    record.session_id = "01ARZ3NDEKTSV4RRFFQ69G5FAV"

    data = json.loads(JSONFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["logger"] == "mcp_hello.test"
    assert data["message"] == "Session created"
    assert data["session_id"] == "01ARZ3NDEKTSV4RRFFQ69G5FAV"
    assert data["timestamp"].endswith("Z")


def test_logs_go_to_stderr_only():
    """Test configured handlers never write to stdout"""
    logger = configure_logging(Config(log_level="DEBUG"))
    try:
        assert logger.handlers
        for handler in logger.handlers:
            assert getattr(handler, "stream", None) is not sys.stdout
        assert logger.propagate is False
    finally:
        logger.handlers = []
        logger.propagate = True


def test_service_logger_is_child_of_package_logger():
    assert get_service_logger("sessions").name == "mcp_hello.sessions"


def test_log_event_fields(caplog):
    logger = logging.getLogger("mcp_hello.test_event")
    logger.addHandler(caplog.handler)
    logger.setLevel(logging.INFO)
    try:
        log_event(logger, "Tool executed", level="INFO", tool="say_hello", duration_ms=1.5)
    finally:
        logger.removeHandler(caplog.handler)

    record = caplog.records[-1]
    assert record.getMessage() == "Tool executed"
    assert record.tool == "say_hello"
    assert record.duration_ms == 1.5


def test_log_file_receives_records(tmp_path):
    log_file = tmp_path / "logs" / "server.log"
    logger = get_logger("mcp_hello.test_file", log_format="json", log_file=log_file)
    logger.propagate = False
    try:
        logger.info("Server started", extra={"transport": "http"})
        for handler in logger.handlers:
            handler.flush()
        assert all(getattr(h, "stream", None) is not sys.stdout for h in logger.handlers)
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.propagate = True

    data = json.loads(log_file.read_text().strip())
    assert data["message"] == "Server started"
    assert data["transport"] == "http"
