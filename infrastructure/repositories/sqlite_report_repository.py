from typing import Optional, List

from infrastructure.repositories.sqlite_base import SQLiteRepository
from infrastructure.repositories.sqlite_profile_repository import INCREMENT_POINTS_SQL
from use_cases.domain_models import WasteReport
from use_cases.errors import PersistenceError

REPORT_SELECT = """
    SELECT r.id, r.user_id, r.waste_type, r.weight, r.status, r.location, r.image_url,
           r.agent_id, r.points_awarded, r.created_at, r.updated_at,
           p.first_name AS owner_first_name, p.last_name AS owner_last_name
    FROM waste_reports r
    LEFT JOIN profiles p ON p.id = r.user_id
"""


def row_to_report(row) -> WasteReport:
    return WasteReport(
        id=row["id"],
        user_id=row["user_id"],
        waste_type=row["waste_type"],
        weight=row["weight"],
        status=row["status"],
        location=row["location"],
        image_url=row["image_url"],
        agent_id=row["agent_id"],
        points_awarded=row["points_awarded"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        owner_first_name=row["owner_first_name"],
        owner_last_name=row["owner_last_name"],
    )


class SQLiteReportRepository(SQLiteRepository):

    def insert_report(self, report_id, user_id, waste_type, weight, location, image_url, created_at):
        with self._session() as conn:
            conn.execute("""
                INSERT INTO waste_reports
                (id, user_id, waste_type, weight, location, image_url, status, agent_id, points_awarded, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, 'pending', NULL, NULL, ?, ?)
            """, (report_id, user_id, waste_type, weight, location, image_url, created_at, created_at))

    def get_report(self, report_id: str) -> Optional[WasteReport]:
        with self._session() as conn:
            row = conn.execute(REPORT_SELECT + " WHERE r.id = ?", (report_id,)).fetchone()
            return row_to_report(row) if row else None

    def list_reports_for_user(self, user_id: str) -> List[WasteReport]:
        with self._session() as conn:
            rows = conn.execute(REPORT_SELECT + " WHERE r.user_id = ? ORDER BY r.created_at DESC", (user_id,)).fetchall()
            return [row_to_report(r) for r in rows]

    def list_reports(self, status: Optional[str] = None) -> List[WasteReport]:
        query = REPORT_SELECT
        params = []
        if status:
            query += " WHERE r.status = ?"
            params.append(status)
        query += " ORDER BY r.created_at DESC"
        with self._session() as conn:
            return [row_to_report(r) for r in conn.execute(query, tuple(params)).fetchall()]

    def decide_report(self, report_id, status, agent_id, points, owner_id, now_iso):
        """
        Apply a pending -> terminal transition and, for approvals, the owner's
        points increment in one transaction.
        Returns (True, None) or (False, "not_found" | "not_pending").
        """
        with self._session() as conn:
            updated = conn.execute("""
                UPDATE waste_reports
                SET status = ?, agent_id = ?, points_awarded = ?, updated_at = ?
                WHERE id = ? AND status = 'pending'
            """, (status, agent_id, points if status == "approved" else None, now_iso, report_id)).rowcount

            if updated == 0:
                exists = conn.execute("SELECT 1 FROM waste_reports WHERE id = ?", (report_id,)).fetchone()
                return False, "not_pending" if exists else "not_found"

            if status == "approved" and points:
                incremented = conn.execute(INCREMENT_POINTS_SQL, (points, now_iso, owner_id)).rowcount
                if incremented != 1:
                    # Raising inside the session rolls the status update back too.
                    raise PersistenceError(f"Points increment failed for user {owner_id}")
            return True, None

    def status_counts(self) -> dict:
        with self._session() as conn:
            rows = conn.execute("SELECT status, COUNT(*) AS n FROM waste_reports GROUP BY status").fetchall()
            return {r["status"]: r["n"] for r in rows}
