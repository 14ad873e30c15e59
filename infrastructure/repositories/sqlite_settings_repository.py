from typing import Optional, Dict

from infrastructure.repositories.sqlite_base import SQLiteRepository
from use_cases.domain_models import SystemSetting


class SQLiteSettingsRepository(SQLiteRepository):

    def get(self, key: str) -> Optional[SystemSetting]:
        with self._session() as conn:
            row = conn.execute("SELECT key, value, updated_at FROM system_settings WHERE key = ?", (key,)).fetchone()
            return SystemSetting(key=row["key"], value=row["value"], updated_at=row["updated_at"]) if row else None

    def get_all(self) -> Dict[str, str]:
        with self._session() as conn:
            return {r["key"]: r["value"] for r in conn.execute("SELECT key, value FROM system_settings").fetchall()}

    def upsert(self, key: str, value: str, now_iso: str):
        with self._session() as conn:
            conn.execute("""
                INSERT INTO system_settings (key, value, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """, (key, value, now_iso, now_iso))

    def insert_default(self, key: str, value: str, now_iso: str) -> bool:
        with self._session() as conn:
            return conn.execute("""
                INSERT OR IGNORE INTO system_settings (key, value, created_at, updated_at)
                VALUES (?, ?, ?, ?)
            """, (key, value, now_iso, now_iso)).rowcount == 1
