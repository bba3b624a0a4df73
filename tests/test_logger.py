# tests/test_logger.py
import logging

from sysvital.utils.logger import Logger


def test_logger_is_singleton():
    assert Logger() is Logger()


def test_configure_writes_audit_file(tmp_path):
    log_file = tmp_path / "audit.log"
    logger = Logger()
    try:
        logger.configure("info", str(log_file))
        logger.success("Plan completed")
        for handler in logger.logger.handlers:
            handler.flush()

        assert logger.logger.level == logging.INFO
        assert "[OK] Plan completed" in log_file.read_text(encoding="utf-8")
    finally:
        logger.configure()


def test_unknown_level_falls_back_to_warning():
    logger = Logger()
    logger.configure("chatty")
    assert logger.logger.level == logging.WARNING
