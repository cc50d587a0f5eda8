"""
Store module for the Course Watcher pipeline.

Known courses are kept in a SQLite table keyed by the detail page URL. The
UNIQUE constraint on the URL guarantees a course is never stored twice, even
if a caller inserts without checking first.
"""

import sqlite3
import threading
from datetime import datetime, timezone
from typing import Optional

from course_watcher.models import CourseRecord
from course_watcher.utils import get_logger


# Module logger
logger = get_logger("store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS courses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    title TEXT,
    location TEXT,
    period TEXT,
    schedule TEXT,
    available_slots TEXT,
    cost TEXT,
    first_seen TEXT
)
"""


class StoreError(Exception):
    """Raised when the course database cannot be opened or read."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class CourseStore:
    """
    SQLite-backed set of known courses.

    The connection is shared by the crawl worker threads; every statement
    runs under an internal lock.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def initialize(self) -> None:
        """
        Open the database and create the courses table if needed.

        Raises:
            StoreError: If the database cannot be opened or initialized.
        """
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            with self._lock, self._conn:
                self._conn.execute(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot initialize database {self.db_path}: {e}", e)

        logger.debug(f"Opened course database {self.db_path}")

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Course store used before initialize()")
        return self._conn

    def exists(self, address: str) -> bool:
        """
        Check whether a course URL is already known.

        Raises:
            StoreError: If the database cannot be queried.
        """
        try:
            with self._lock:
                row = self.connection.execute(
                    "SELECT EXISTS(SELECT 1 FROM courses WHERE url = ?)",
                    (address,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot query database for {address}: {e}", e)

        return bool(row[0])

    def insert(self, record: CourseRecord) -> bool:
        """
        Store a new course.

        Write failures are logged and reported through the return value.

        Returns:
            True if the course was stored, False on duplicate or error.
        """
        first_seen = datetime.now(timezone.utc).isoformat()

        try:
            with self._lock, self.connection:
                self.connection.execute(
                    "INSERT INTO courses "
                    "(url, title, location, period, schedule, available_slots, cost, first_seen) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.address,
                        record.title,
                        record.location,
                        record.period,
                        record.schedule,
                        record.available_slots,
                        record.cost,
                        first_seen,
                    )
                )
        except sqlite3.IntegrityError:
            logger.warning(f"Course already stored: {record.address}")
            return False
        except sqlite3.Error as e:
            logger.error(f"Error saving course {record.address}: {e}")
            return False

        logger.debug(f"Stored course {record.address}")
        return True

    def count(self) -> int:
        """Number of stored courses."""
        try:
            with self._lock:
                row = self.connection.execute("SELECT COUNT(*) FROM courses").fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot count courses: {e}", e)
        return int(row[0])

    def close(self) -> None:
        if self._conn is not None:
            with self._lock:
                self._conn.close()
            self._conn = None

    def __enter__(self) -> "CourseStore":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
