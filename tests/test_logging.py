"""
Secure logging tests.
"""

import json
import logging
from pathlib import Path

import pytest

from sealedsession.core.config import LoggingConfig, SessionConfig
from sealedsession.core.logging import (
    PACKAGE_LOGGER,
    SecureLogFilter,
    SecureRotatingFileHandler,
    StructuredLogFormatter,
    configure_logging,
    get_secure_logger,
)


def _record(msg, args=None):
    return logging.LogRecord("sealedsession.test", logging.WARNING, __file__, 1, msg, args, None)


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


class TestSecureLogFilter:
    """Tests for redaction"""

    def test_redacts_assignments(self):
        record = _record("shared_secret=abcdef response_key: 1234 nonce=00ff")
        assert SecureLogFilter().filter(record)
        assert "abcdef" not in record.msg
        assert "1234" not in record.msg
        assert "00ff" not in record.msg
        assert "[REDACTED]" in record.msg

    def test_redacts_hex_blobs(self):
        blob = "ab" * 32
        record = _record("enc was %s", (blob,))
        SecureLogFilter().filter(record)
        assert blob not in record.getMessage()

    def test_redacts_base64_blobs(self):
        blob = "QUJD" * 15
        record = _record(f"payload {blob}")
        SecureLogFilter().filter(record)
        assert blob not in record.msg

    def test_leaves_plain_messages_alone(self):
        record = _record("unable to export response nonce")
        SecureLogFilter().filter(record)
        assert record.msg == "unable to export response nonce"

    def test_non_string_args_untouched(self):
        record = _record("enc_len=%d", (32,))
        SecureLogFilter().filter(record)
        assert record.getMessage() == "enc_len=32"


class TestConfigureLogging:
    """Tests for configure_logging()"""

    def test_silent_by_default(self, package_logger):
        assert any(isinstance(h, logging.NullHandler) for h in package_logger.handlers)

    def test_console_handler_is_filtered(self, package_logger):
        config = SessionConfig(logging=LoggingConfig(level="DEBUG", enable_console=True))
        logger = configure_logging(config)
        assert logger is package_logger
        assert logger.level == logging.DEBUG
        added = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)
                 and not isinstance(h, logging.NullHandler)]
        assert added
        assert all(any(isinstance(f, SecureLogFilter) for f in h.filters) for h in added)

    def test_no_duplicate_handlers(self, package_logger):
        config = SessionConfig(logging=LoggingConfig(enable_console=True))
        configure_logging(config)
        count = len(package_logger.handlers)
        configure_logging(config)
        assert len(package_logger.handlers) == count

    def test_file_output_is_redacted(self, package_logger, tmp_path):
        config = SessionConfig(
            logging=LoggingConfig(level="INFO", enable_file=True, log_dir=tmp_path)
        )
        logger = configure_logging(config)
        blob = "cafebabe" * 8
        logger.warning("enc is %s", blob)
        for handler in logger.handlers:
            handler.flush()
        text = (tmp_path / "sealedsession.log").read_text(encoding="utf-8")
        assert "enc is" in text
        assert blob not in text


    def test_json_format_from_config(self, package_logger, tmp_path):
        config = SessionConfig(
            logging=LoggingConfig(enable_file=True, json_format=True, log_dir=tmp_path)
        )
        logger = configure_logging(config)
        logger.error("session failed")
        for handler in logger.handlers:
            handler.flush()
        line = (tmp_path / "sealedsession.log").read_text(encoding="utf-8").strip()
        assert json.loads(line)["message"] == "session failed"


class TestHandlers:
    """Tests for the formatter and file handler"""

    def test_structured_formatter(self):
        line = StructuredLogFormatter().format(_record("hello %s", ("world",)))
        data = json.loads(line)
        assert data["message"] == "hello world"
        assert data["level"] == "WARNING"
        assert data["logger"] == "sealedsession.test"

    def test_file_handler_rejects_traversal(self, tmp_path):
        with pytest.raises(ValueError):
            SecureRotatingFileHandler(tmp_path / ".." / "escape.log")

    def test_file_handler_creates_directory(self, tmp_path):
        handler = SecureRotatingFileHandler(tmp_path / "nested" / "out.log")
        try:
            assert Path(handler.baseFilename).parent.is_dir()
        finally:
            handler.close()

    def test_json_file_logger(self, tmp_path):
        logger = get_secure_logger(
            "sealedsession.jsontest", log_dir=tmp_path, enable_console=False, enable_json=True
        )
        try:
            logger.info("ready")
            for handler in logger.handlers:
                handler.flush()
            line = (tmp_path / "sealedsession_jsontest.log").read_text(encoding="utf-8").strip()
            assert json.loads(line)["message"] == "ready"
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
