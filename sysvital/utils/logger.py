"""
SysVital Logging System
Process-wide logger. Console output goes to stderr so reports printed by the
CLI stay clean; an optional audit file receives the same records.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class Logger:
    """Singleton wrapper around the 'sysvital' logging.Logger."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super(Logger, cls).__new__(cls)
            instance.logger = logging.getLogger("sysvital")
            instance.configure()
            cls._instance = instance
        return cls._instance

    def configure(self, level: str = "WARNING", log_file: Optional[str] = None) -> None:
        """(Re)builds the handlers. Called again by the CLI once the config is loaded."""
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        self.logger.addHandler(console)

        if log_file:
            try:
                audit = logging.FileHandler(log_file, encoding='utf-8')
            except OSError as e:
                self.logger.warning(f"Audit log disabled, cannot open {log_file}: {e}")
            else:
                audit.setFormatter(formatter)
                self.logger.addHandler(audit)

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def success(self, msg: str) -> None:
        self.logger.info(f"[OK] {msg}")
