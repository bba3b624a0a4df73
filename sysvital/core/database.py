"""
Event log and score history backed by SQLite.

The engine records every analysis and the executor records one event per
optimization step; the CLI reads them back (`history`, `export`). One
connection is opened with check_same_thread=False and every statement runs
under self.lock, so the manager can be shared by any thread.
"""
import csv
import sqlite3
import threading
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from sysvital.core.models import SystemAnalysisReport
from sysvital.utils.logger import Logger

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
EVENT_COLUMNS = ("timestamp", "type", "severity", "message")
SCORE_COLUMNS = ("timestamp", "overall", "hardware", "software", "performance", "security")

SCHEMA = (
    """CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        type TEXT NOT NULL,
        severity TEXT NOT NULL DEFAULT 'INFO',
        message TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS analyses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        overall INTEGER,
        hardware INTEGER,
        software INTEGER,
        performance INTEGER,
        security INTEGER
    )""",
)

Row = Tuple[Any, ...]


class DatabaseManager:
    """Thread-safe SQLite store for optimization events and health scores."""

    def __init__(self, db_name: str = "sysvital.db") -> None:
        self.db_name = db_name
        self.lock = threading.Lock()
        self.logger = Logger()
        self.conn = sqlite3.connect(db_name, check_same_thread=False)

        # WAL no está disponible en bases en memoria, no es un error
        self._write("PRAGMA journal_mode=WAL")
        for statement in SCHEMA:
            self._write(statement)

    # --- HELPERS ---
    def _write(self, sql: str, params: Sequence[Any] = ()) -> bool:
        with self.lock:
            try:
                with self.conn:
                    self.conn.execute(sql, params)
                return True
            except sqlite3.Error as e:
                self.logger.error(f"Database write failed ({self.db_name}): {e}")
                return False

    def _read(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        with self.lock:
            try:
                return self.conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                self.logger.error(f"Database read failed ({self.db_name}): {e}")
                return []

    @staticmethod
    def _now() -> str:
        return datetime.now().strftime(TIMESTAMP_FORMAT)

    # --- ESCRITURA ---
    def log_event(self, event_type: str, message: str, severity: str = "INFO") -> None:
        self._write(
            f"INSERT INTO events ({', '.join(EVENT_COLUMNS)}) VALUES (?, ?, ?, ?)",
            (self._now(), event_type, severity, message),
        )

    def record_analysis(self, report: SystemAnalysisReport) -> None:
        domains = (report.hardware, report.software, report.performance, report.security)
        self._write(
            f"INSERT INTO analyses ({', '.join(SCORE_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?)",
            (report.timestamp.strftime(TIMESTAMP_FORMAT), report.overall_health_score,
             *(d.health_score for d in domains)),
        )

    # --- LECTURA ---
    def get_recent_events(self, limit: Optional[int] = 50) -> List[Row]:
        """Events newest first as (timestamp, type, severity, message). limit=None returns all."""
        sql = f"SELECT {', '.join(EVENT_COLUMNS)} FROM events ORDER BY id DESC"
        if limit is None:
            return self._read(sql)
        return self._read(sql + " LIMIT ?", (limit,))

    def get_score_history(self, limit: int = 20) -> List[Row]:
        return self._read(
            f"SELECT {', '.join(SCORE_COLUMNS)} FROM analyses ORDER BY id DESC LIMIT ?", (limit,)
        )

    def export_events_to_csv(self, filename: str = "sysvital_events.csv") -> Tuple[bool, str]:
        rows = self.get_recent_events(limit=None)
        try:
            with open(filename, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow([c.upper() for c in EVENT_COLUMNS])
                writer.writerows(rows)
        except OSError as e:
            return False, str(e)
        return True, f"Exported {len(rows)} events to {filename}"

    def close(self) -> None:
        with self.lock:
            self.conn.close()
