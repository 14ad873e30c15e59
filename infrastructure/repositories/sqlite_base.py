import sqlite3
from contextlib import contextmanager

from use_cases.errors import PersistenceError

SQLITE_TIMEOUT = 10


class SQLiteRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _conn(self):
        conn = sqlite3.connect(self.db_path, timeout=SQLITE_TIMEOUT)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self):
        """Yield a connection whose statements commit together or not at all."""
        try:
            conn = self._conn()
        except sqlite3.Error as e:
            raise PersistenceError(f"Database unavailable: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
