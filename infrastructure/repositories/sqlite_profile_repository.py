import sqlite3
from typing import Optional, List

from infrastructure.repositories.sqlite_base import SQLiteRepository
from use_cases.session_models import Profile

INCREMENT_POINTS_SQL = "UPDATE profiles SET points = points + ?, updated_at = ? WHERE id = ? AND user_type = 'user'"

EDITABLE_PROFILE_FIELDS = {"first_name", "last_name", "company_name", "business_license", "avatar_url"}

PROFILE_COLUMNS = """
    id, user_type, is_approved, first_name, last_name, company_name,
    business_license, points, avatar_url, created_at, updated_at
"""


def row_to_profile(row) -> Profile:
    return Profile(
        id=row["id"],
        role=row["user_type"],
        is_approved=bool(row["is_approved"]),
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        company_name=row["company_name"],
        business_license=row["business_license"],
        points=row["points"] or 0,
        avatar_url=row["avatar_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SQLiteProfileRepository(SQLiteRepository):
    """Identities, profiles and the identity provider's bookkeeping tables."""

    # --- identities & profiles ---

    def create_identity(self, identity_id, email, salt_hex, pw_hash, role, is_approved,
                        first_name, last_name, company_name, business_license, created_at):
        with self._session() as conn:
            try:
                conn.execute("""
                    INSERT INTO identities (id, email, password_salt, password_hash, created_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (identity_id, email, salt_hex, pw_hash, created_at))
                conn.execute(f"""
                    INSERT INTO profiles ({PROFILE_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, 0, NULL, ?, ?)
                """, (identity_id, role, int(bool(is_approved)), first_name, last_name,
                      company_name, business_license, created_at, created_at))
                return True, None
            except sqlite3.IntegrityError:
                conn.rollback()
                return False, "integrity_error"

    def get_identity_by_email(self, email: str) -> Optional[dict]:
        with self._session() as conn:
            row = conn.execute("""
                SELECT id, email, password_salt, password_hash
                FROM identities WHERE email = ?
            """, (email,)).fetchone()
            return dict(row) if row else None

    def get_identity_by_id(self, identity_id: str) -> Optional[dict]:
        with self._session() as conn:
            row = conn.execute("SELECT id, email FROM identities WHERE id = ?", (identity_id,)).fetchone()
            return dict(row) if row else None

    def email_exists(self, email: str) -> bool:
        with self._session() as conn:
            return conn.execute("SELECT 1 FROM identities WHERE email = ?", (email,)).fetchone() is not None

    def update_password(self, identity_id, salt_hex, pw_hash):
        with self._session() as conn:
            conn.execute(
                "UPDATE identities SET password_salt = ?, password_hash = ? WHERE id = ?",
                (salt_hex, pw_hash, identity_id),
            )

    def delete_identity(self, identity_id: str) -> int:
        with self._session() as conn:
            return conn.execute("DELETE FROM identities WHERE id = ?", (identity_id,)).rowcount

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        with self._session() as conn:
            row = conn.execute(f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id = ?", (profile_id,)).fetchone()
            return row_to_profile(row) if row else None

    def list_profiles(self, role: Optional[str] = None, is_approved: Optional[bool] = None) -> List[Profile]:
        query = f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE 1=1"
        params = []
        if role is not None:
            query += " AND user_type = ?"
            params.append(role)
        if is_approved is not None:
            query += " AND is_approved = ?"
            params.append(int(is_approved))
        query += " ORDER BY created_at DESC"
        with self._session() as conn:
            return [row_to_profile(r) for r in conn.execute(query, tuple(params)).fetchall()]

    def update_profile_fields(self, profile_id: str, fields: dict, updated_at: str) -> int:
        unknown = set(fields) - EDITABLE_PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Fields are not editable: {sorted(unknown)}")
        if not fields:
            return 0
        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = list(fields.values()) + [updated_at, profile_id]
        with self._session() as conn:
            return conn.execute(
                f"UPDATE profiles SET {assignments}, updated_at = ? WHERE id = ?", tuple(params)
            ).rowcount

    def set_agent_approval(self, agent_id: str, approved: bool, updated_at: str) -> int:
        """Flip the approval flag of a still-unapproved agent; returns affected rows."""
        with self._session() as conn:
            return conn.execute("""
                UPDATE profiles SET is_approved = ?, updated_at = ?
                WHERE id = ? AND user_type = 'agent' AND is_approved = 0
            """, (int(approved), updated_at, agent_id)).rowcount

    def increment_points(self, user_id: str, points: int, updated_at: str) -> int:
        with self._session() as conn:
            return conn.execute(INCREMENT_POINTS_SQL, (points, updated_at, user_id)).rowcount

    # --- login attempts ---

    def get_login_attempts(self, email: str):
        with self._session() as conn:
            row = conn.execute("SELECT attempts, last_attempt FROM login_attempts WHERE email = ?", (email,)).fetchone()
            if row:
                return {"attempts": row[0], "last_attempt": row[1]}
            return None

    def reset_login_attempts(self, email: str):
        with self._session() as conn:
            conn.execute("UPDATE login_attempts SET attempts = 0 WHERE email = ?", (email,))

    def record_failed_attempt(self, email: str, attempt_time: str):
        with self._session() as conn:
            conn.execute("""
               INSERT INTO login_attempts (email, attempts, last_attempt)
               VALUES (?, 1, ?)
               ON CONFLICT(email) DO UPDATE SET
               attempts = attempts + 1, last_attempt = ?
            """, (email, attempt_time, attempt_time))

    def delete_login_attempts(self, email: str):
        with self._session() as conn:
            conn.execute("DELETE FROM login_attempts WHERE email = ?", (email,))

    # --- runtime sessions ---

    def create_session(self, token, user_id, expires_iso, now_iso, ua_hash):
        with self._session() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO sessions (token, user_id, expires_at, created_at, last_seen_at, ua_hash)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (token, user_id, expires_iso, now_iso, now_iso, ua_hash))

    def get_session(self, token):
        with self._session() as conn:
            return conn.execute("SELECT user_id, expires_at, ua_hash FROM sessions WHERE token = ?", (token,)).fetchone()

    def update_session_last_seen(self, token, now_iso):
        with self._session() as conn:
            conn.execute("UPDATE sessions SET last_seen_at = ? WHERE token = ?", (now_iso, token))

    def delete_session(self, token):
        with self._session() as conn:
            conn.execute("DELETE FROM sessions WHERE token = ?", (token,))

    # --- password resets ---

    def create_password_reset(self, token_hash, user_id, expires_iso):
        with self._session() as conn:
            conn.execute("""
                INSERT INTO password_resets (token_hash, user_id, expires_at, used_at)
                VALUES (?, ?, ?, NULL)
            """, (token_hash, user_id, expires_iso))

    def consume_password_reset(self, token_hash, now_iso) -> Optional[str]:
        """Mark an unused, unexpired reset token as used and return its owner."""
        with self._session() as conn:
            updated = conn.execute("""
                UPDATE password_resets SET used_at = ?
                WHERE token_hash = ? AND used_at IS NULL AND expires_at > ?
            """, (now_iso, token_hash, now_iso)).rowcount
            if not updated:
                return None
            row = conn.execute("SELECT user_id FROM password_resets WHERE token_hash = ?", (token_hash,)).fetchone()
            return row["user_id"]
