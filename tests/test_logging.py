import json
import logging
import sys

from oidc_cli.app.logging_config import HANDLER_NAME, JsonFormatter, configure_logging


def _record(**extra):
    record = logging.LogRecord("oidc_cli.server", logging.INFO, __file__, 1, "request", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_copies_selected_extras():
    line = JsonFormatter().format(_record(method="GET", path="/callback", status=200, secret="x"))
    payload = json.loads(line)
    assert payload["message"] == "request"
    assert payload["level"] == "info"
    assert payload["logger"] == "oidc_cli.server"
    assert (payload["method"], payload["path"], payload["status"]) == ("GET", "/callback", 200)
    assert "secret" not in payload


def test_json_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("oidc_cli", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    payload = json.loads(JsonFormatter().format(record))
    assert "ValueError: boom" in payload["exception"]


def test_configure_logging_uses_stderr():
    root = logging.getLogger()
    httpx_logger = logging.getLogger("httpx")
    saved = (root.level, httpx_logger.level, root.handlers[:])
    root.handlers.clear()
    try:
        configure_logging(as_json=True, log_level="info")

        (handler,) = root.handlers
        assert handler.get_name() == HANDLER_NAME
        assert handler.stream is sys.stderr
        assert isinstance(handler.formatter, JsonFormatter)
        assert root.level == logging.INFO
        assert httpx_logger.level == logging.WARNING
    finally:
        root.handlers[:] = saved[2]
        root.setLevel(saved[0])
        httpx_logger.setLevel(saved[1])
