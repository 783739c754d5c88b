"""
Unit tests for structured logging utilities.
"""

import json
import logging
from io import StringIO

import pytest

from octoslack.utils.logging import (
    JSONFormatter,
    get_logger,
    log_api_call,
    log_error_with_context,
    log_pr_event,
    setup_logging,
)


@pytest.fixture
def captured():
    """Attach a JSON handler to a dedicated logger and yield (adapter, stream)."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    base = logging.getLogger("octoslack.test")
    base.addHandler(handler)
    base.setLevel(logging.DEBUG)
    base.propagate = False

    yield get_logger("octoslack.test"), stream

    base.removeHandler(handler)
    base.propagate = True


def read_record(stream: StringIO) -> dict:
    lines = stream.getvalue().strip().splitlines()
    assert len(lines) == 1
    return json.loads(lines[0])


def test_json_formatter(captured):
    """Test JSON formatter produces valid JSON output."""
    logger, stream = captured

    logger.info("Test message", extra={"pr_number": 42, "repository": "owner/repo"})

    log_data = read_record(stream)
    assert "timestamp" in log_data
    assert log_data["timestamp"].endswith("Z")
    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "octoslack.test"
    assert log_data["message"] == "Test message"
    assert log_data["pr_number"] == 42
    assert log_data["repository"] == "owner/repo"
    assert "context" not in log_data
    assert log_data["source"]["function"] == "test_json_formatter"


def test_extra_fields_go_under_context(captured):
    logger, stream = captured

    logger.info("Pushed", extra={"list": "slack_messages"})

    assert read_record(stream)["context"] == {"list": "slack_messages"}


def test_get_logger_with_context():
    """Test getting logger with context."""
    logger = get_logger("test_module", repository="owner/repo", pr_number=7)

    assert logger.extra["repository"] == "owner/repo"
    assert logger.extra["pr_number"] == 7


def test_with_context_does_not_mutate_parent(captured):
    logger, stream = captured

    child = logger.with_context(channel="C123")
    child.info("from child")

    assert read_record(stream)["channel"] == "C123"
    assert "channel" not in logger.extra


def test_call_site_extra_overrides_context(captured):
    logger, stream = captured

    logger.with_context(pr_number=1).info("override", extra={"pr_number": 2})

    assert read_record(stream)["pr_number"] == 2


def test_log_pr_event(captured):
    """Test PR event logging."""
    logger, stream = captured

    log_pr_event(logger, pr_number=123, repository="owner/repo", action="opened")

    log_data = read_record(stream)
    assert log_data["message"] == "PR event received: opened"
    assert log_data["pr_number"] == 123
    assert log_data["repository"] == "owner/repo"
    assert log_data["event_action"] == "opened"


def test_log_api_call(captured):
    """Test API call logging."""
    logger, stream = captured

    log_api_call(
        logger,
        service="slack",
        endpoint="conversations.history",
        duration_ms=150.567,
        result_count=12
    )

    log_data = read_record(stream)
    assert log_data["level"] == "DEBUG"
    assert log_data["context"]["service"] == "slack"
    assert log_data["context"]["endpoint"] == "conversations.history"
    assert log_data["context"]["duration_ms"] == 150.57
    assert log_data["context"]["result_count"] == 12


def test_log_api_call_with_error(captured):
    """Test API call logging with error."""
    logger, stream = captured

    log_api_call(
        logger,
        service="slack",
        endpoint="conversations.replies",
        error="timed out after 10.0s"
    )

    log_data = read_record(stream)
    assert log_data["level"] == "ERROR"
    assert log_data["context"]["error"] == "timed out after 10.0s"


def test_log_error_with_context(captured):
    logger, stream = captured

    try:
        raise ValueError("bad payload")
    except ValueError as e:
        log_error_with_context(logger, "Error handling event", e, channel="github-events")

    log_data = read_record(stream)
    assert log_data["level"] == "ERROR"
    assert log_data["message"] == "Error handling event: bad payload"
    assert log_data["channel"] == "github-events"
    assert log_data["error"]["type"] == "ValueError"
    assert "bad payload" in log_data["error"]["stack_trace"]


@pytest.mark.parametrize("level,expected", [
    ("DEBUG", logging.DEBUG),
    ("info", logging.INFO),
    ("WARN", logging.WARNING),
    ("ERROR", logging.ERROR),
    ("nonsense", logging.INFO),
])
def test_setup_logging_levels(level, expected):
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    try:
        setup_logging(level)

        assert root.level == expected
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
