"""Tests for structured logging setup."""

import json
import logging

from src.shared.logging import NOISY_LOGGERS, setup_logging


def test_file_handler_writes_json(tmp_path):
    log_file = tmp_path / "logs" / "app.log"
    setup_logging(level="INFO", file_path=str(log_file))
    try:
        logging.getLogger("dashboard.test").info("Saved result project=%s", "p")
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "Saved result project=p"
        assert entry["level"] == "info"
        assert entry["logger"] == "dashboard.test"
    finally:
        setup_logging(level="INFO")


def test_noisy_loggers_quiet_unless_debug():
    setup_logging(level="INFO")
    assert all(logging.getLogger(n).level == logging.WARNING for n in NOISY_LOGGERS)
    setup_logging(level="DEBUG")
    assert all(logging.getLogger(n).level == logging.DEBUG for n in NOISY_LOGGERS)
    setup_logging(level="INFO")
