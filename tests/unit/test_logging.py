"""
Unit tests for structured logging configuration.
"""

import io
import json

import pytest

from requestlens.utils.logging import configure_logging, get_logger


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    yield stream
    configure_logging()


def test_json_logging_writes_events_to_stream(log_stream):
    configure_logging(level="info", fmt="json", stream=log_stream)
    get_logger("requestlens.tests").info("report_completed", report="volume_anomalies", row_count=2)

    event = json.loads(log_stream.getvalue().strip().splitlines()[-1])
    assert event["event"] == "report_completed"
    assert event["report"] == "volume_anomalies"
    assert event["severity"] == "INFO"


def test_level_filters_debug_events(log_stream):
    configure_logging(level="warning", fmt="json", stream=log_stream)
    get_logger("requestlens.tests").info("aggregation_complete")

    assert log_stream.getvalue() == ""


def test_unknown_format_raises():
    with pytest.raises(ValueError):
        configure_logging(fmt="xml")
