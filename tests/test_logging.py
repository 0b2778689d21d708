import json
import logging
import sys

from app.core.logger import JsonFormatter, get_logger, get_logger_with_correlation


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("hello_service.test", logging.WARNING, __file__, 1, "disk at %s%%", (91,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_renders_single_object():
    payload = json.loads(JsonFormatter().format(make_record(correlation_id="corr-1")))

    assert payload["level"] == "warning"
    assert payload["logger"] == "hello_service.test"
    assert payload["message"] == "disk at 91%"
    assert payload["correlation_id"] == "corr-1"


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad value")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert "ValueError: bad value" in payload["exc_info"]


def test_child_loggers_share_namespace():
    assert get_logger("database").name == "hello_service.database"
    assert get_logger().name == "hello_service"


def test_correlation_adapter_stamps_records(caplog):
    with caplog.at_level(logging.INFO):
        get_logger_with_correlation("corr-42").info("hello")

    assert caplog.records[-1].correlation_id == "corr-42"
