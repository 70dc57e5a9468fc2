"""JSON log lines and structured fields."""

import io
import json
import logging

import pytest

from app.utils.logger import ROOT_LOGGER, configure_logging, get_logger, log_extra


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    configure_logging(stream=stream)
    yield stream
    logging.getLogger(ROOT_LOGGER).handlers.clear()


def lines(stream) -> list:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_line_carries_fixed_and_structured_fields(log_stream):
    get_logger("api.stories").info("Story saved", extra=log_extra(path="/api/v1/stories", story_id=None))

    [line] = lines(log_stream)
    assert line["level"] == "INFO"
    assert line["logger"] == "inkling.api.stories"
    assert line["message"] == "Story saved"
    assert line["path"] == "/api/v1/stories"
    assert "story_id" not in line
    assert line["at"].startswith("test_logger:")


def test_structured_fields_do_not_overwrite_fixed_ones(log_stream):
    get_logger("x").warning("real message", extra=log_extra(message="spoofed", level="DEBUG"))

    [line] = lines(log_stream)
    assert line["message"] == "real message"
    assert line["level"] == "WARNING"


def test_exception_is_rendered(log_stream):
    try:
        raise ValueError("boom")
    except ValueError:
        get_logger("x").exception("failed")

    [line] = lines(log_stream)
    assert "ValueError: boom" in line["exception"]


def test_debug_is_dropped_unless_enabled(log_stream):
    get_logger("x").debug("hidden")
    assert lines(log_stream) == []

    stream = io.StringIO()
    configure_logging(debug=True, stream=stream)
    get_logger("x").debug("shown")
    assert lines(stream)[0]["message"] == "shown"
