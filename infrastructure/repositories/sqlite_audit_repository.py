import json
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime, timezone
import logging
from enum import Enum

from infrastructure.observability import SENSITIVE_PATTERNS
from infrastructure.repositories.sqlite_base import SQLiteRepository

log = logging.getLogger(__name__)


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAIL = "LOGIN_FAIL"
    LOGIN_BLOCKED = "LOGIN_BLOCKED"
    LOGOUT = "LOGOUT"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_RESET = "PASSWORD_RESET"
    RBAC_DENIED = "RBAC_DENIED"
    USER_CREATE = "USER_CREATE"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    AGENT_APPROVE = "AGENT_APPROVE"
    AGENT_REJECT = "AGENT_REJECT"
    REPORT_SUBMIT = "REPORT_SUBMIT"
    REPORT_DECIDE = "REPORT_DECIDE"
    REWARD_CREATE = "REWARD_CREATE"
    REWARD_UPDATE = "REWARD_UPDATE"
    REWARD_DELETE = "REWARD_DELETE"
    REWARD_REDEEM = "REWARD_REDEEM"
    SETTING_UPDATE = "SETTING_UPDATE"
    SYSTEM_ERROR = "SYSTEM_ERROR"


ALLOWED_METADATA_KEYS = {
    "reason", "attempts", "cooldown", "new_status", "role", "status",
    "error_message", "target_action", "points", "weight", "cost",
    "key", "value", "fields", "email_domain",
}


MAX_METADATA_CHARS = 2000

# column -> max stored length
FIELD_LIMITS = {
    "action": 50,
    "target_type": 50,
    "actor_user_id": 64,
    "actor_role": 20,
    "target_id": 100,
    "ip_address": 45,
    "result": 20,
}


def _clip(value, field: str) -> Optional[str]:
    if value is None:
        return None
    return str(value)[:FIELD_LIMITS[field]]


# Secret-shaped values (long tokens, e-mail addresses) are dropped even under an allowed key.
def _looks_secret(value) -> bool:
    text = json.dumps(value, default=str) if isinstance(value, (list, dict)) else str(value)
    return any(p.search(text) for p in SENSITIVE_PATTERNS)


def sanitize_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    """Keep whitelisted keys only and serialize to bounded JSON."""
    if metadata is None:
        return None
    kept = {
        k: v for k, v in metadata.items()
        if k in ALLOWED_METADATA_KEYS and not _looks_secret(v)
    }
    try:
        encoded = json.dumps(kept)
    except (TypeError, ValueError):
        return json.dumps({"error": "unserializable"})
    if len(encoded) > MAX_METADATA_CHARS:
        kept["truncated"] = True
        encoded = json.dumps(kept)[:MAX_METADATA_CHARS]
    return encoded


class SQLiteAuditRepository(SQLiteRepository):

    def log_action(
        self,
        action: Any,
        target_type: str,
        actor_user_id: Optional[str] = None,
        actor_role: Optional[str] = None,
        target_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        result: str = "success"
    ):
        """Append one audit row. Never raises: a broken audit trail must not break the caller."""
        try:
            action_name = getattr(action, "value", None) or str(action) or "UNKNOWN"
            row = (
                datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
                _clip(actor_user_id, "actor_user_id"),
                _clip(actor_role, "actor_role"),
                _clip(action_name, "action"),
                _clip(target_type or "UNKNOWN", "target_type"),
                _clip(target_id, "target_id"),
                sanitize_metadata(metadata),
                _clip(ip_address, "ip_address"),
                _clip(result or "unknown", "result"),
            )
            conn = self._conn()
            try:
                conn.execute("""
                    INSERT INTO audit_log
                    (ts, actor_user_id, actor_role, action, target_type, target_id, metadata_json, ip_address, result)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, row)
                conn.commit()
            finally:
                conn.close()
        except Exception as e:
            log.error(f"Audit log failed for action {action}: {e}", exc_info=True)

    def get_logs(self, limit: int = 100, action_filter: Optional[str] = None, user_filter: Optional[str] = None) -> List[Tuple]:
        """
        Most recent audit rows, newest first, as
        (id, ts, actor, role, action, target_type, target_id, metadata_json, ip, result).
        The actor column shows the e-mail when the identity still exists.
        """
        clauses = []
        params: List[Any] = []
        if action_filter and action_filter != "All":
            clauses.append("a.action = ?")
            params.append(action_filter)
        if user_filter and user_filter != "All":
            clauses.append("(i.email LIKE ? OR a.actor_user_id = ?)")
            params.extend([f"%{user_filter}%", user_filter])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        try:
            with self._session() as conn:
                rows = conn.execute(f"""
                    SELECT a.id, a.ts, COALESCE(i.email, a.actor_user_id, 'SYSTEM'),
                           a.actor_role, a.action, a.target_type, a.target_id,
                           a.metadata_json, a.ip_address, a.result
                    FROM audit_log a
                    LEFT JOIN identities i ON a.actor_user_id = i.id
                    {where}
                    ORDER BY a.id DESC LIMIT ?
                """, params).fetchall()
        except Exception as e:
            log.error(f"Failed to fetch audit logs: {e}", exc_info=True)
            return []
        return [tuple(r) for r in rows]
