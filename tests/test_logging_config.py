"""
Tests for log setup and secret redaction
"""
import logging

from callpanel.logging_config import JsonFormatter, RedactTokenFilter, setup_logging


def make_record(msg, *args):
    return logging.LogRecord("uvicorn.error", logging.INFO, __file__, 1, msg, args, None)


def test_socket_token_is_masked():
    record = make_record('%s - "WebSocket %s" [accepted]', "127.0.0.1:5000", "/ws?channelSlug=recepcao&token=eyJ.abc.def")
    assert RedactTokenFilter().filter(record) is True
    message = record.getMessage()
    assert "eyJ.abc.def" not in message
    assert "/ws?channelSlug=recepcao&token=[REDACTED]" in message


def test_leading_token_parameter_is_masked():
    record = make_record("GET /ws?token=secret-value&channelSlug=x")
    RedactTokenFilter().filter(record)
    assert record.getMessage() == "GET /ws?token=[REDACTED]&channelSlug=x"


def test_other_messages_are_untouched():
    record = make_record("Socket joined %s", "pairing-123456")
    RedactTokenFilter().filter(record)
    assert record.args == ("pairing-123456",)
    assert record.getMessage() == "Socket joined pairing-123456"


def test_console_handler_redacts():
    config = setup_logging()
    assert config["handlers"]["console"]["filters"] == ["redact_tokens"]

    record = make_record('"WebSocket %s" 403', "/ws?token=abc123")
    for f in logging.getLogger("uvicorn").handlers[0].filters:
        f.filter(record)
    assert "abc123" not in JsonFormatter().format(record)
