"""Typed access to the admin-managed system settings."""

import logging
import math
from datetime import datetime, timezone
from typing import Dict

from infrastructure.repositories import get_audit_repo, get_settings_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from use_cases import rbac_policy
from use_cases.errors import AuthorizationFailure, ValidationFailure
from use_cases.session_models import Profile

log = logging.getLogger(__name__)

POINTS_PER_KG = "points_per_kg"
DEFAULT_AGENT_APPROVAL = "default_agent_approval"
EMAIL_NOTIFICATIONS = "email_notifications"

DEFAULT_SETTINGS = {
    POINTS_PER_KG: "1",
    DEFAULT_AGENT_APPROVAL: "false",
    EMAIL_NOTIFICATIONS: "true",
}

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def seed_defaults() -> int:
    """Insert missing default settings; returns how many rows were created."""
    repo = get_settings_repo()
    now_iso = _now_iso()
    return sum(1 for key, value in DEFAULT_SETTINGS.items() if repo.insert_default(key, value, now_iso))


def get_all() -> Dict[str, str]:
    values = dict(DEFAULT_SETTINGS)
    values.update(get_settings_repo().get_all())
    return values


def _get_raw(key: str) -> str:
    setting = get_settings_repo().get(key)
    return setting.value if setting is not None else DEFAULT_SETTINGS[key]


def _parse_bool(raw: str) -> bool:
    value = str(raw).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_ratio(raw: str) -> float:
    ratio = float(raw)
    if not (ratio > 0 and math.isfinite(ratio)):
        raise ValueError(f"ratio must be positive: {raw!r}")
    return ratio


def get_points_per_kg() -> float:
    raw = _get_raw(POINTS_PER_KG)
    try:
        return _parse_ratio(raw)
    except ValueError:
        log.warning(f"Invalid {POINTS_PER_KG} setting {raw!r}; falling back to 1")
        return 1.0


def get_default_agent_approval() -> bool:
    raw = _get_raw(DEFAULT_AGENT_APPROVAL)
    try:
        return _parse_bool(raw)
    except ValueError:
        log.warning(f"Invalid {DEFAULT_AGENT_APPROVAL} setting {raw!r}; treating as off")
        return False


def get_email_notifications() -> bool:
    raw = _get_raw(EMAIL_NOTIFICATIONS)
    try:
        return _parse_bool(raw)
    except ValueError:
        return True


def _normalize(key: str, value) -> str:
    if key == POINTS_PER_KG:
        try:
            ratio = _parse_ratio(str(value))
        except ValueError:
            raise ValidationFailure("Points per kilogram must be a positive number.")
        return f"{ratio:g}"
    try:
        return "true" if _parse_bool(str(value)) else "false"
    except ValueError:
        raise ValidationFailure(f"Setting '{key}' must be on or off.")


def update_setting(key: str, value, acting_profile: Profile) -> str:
    """Admin-only write of a known setting; returns the stored value."""
    if not rbac_policy.enforce(acting_profile, rbac_policy.UPDATE_SETTINGS):
        raise AuthorizationFailure("Only administrators can change system settings.")
    if key not in DEFAULT_SETTINGS:
        raise ValidationFailure(f"Unknown setting '{key}'.")

    stored = _normalize(key, value)
    get_settings_repo().upsert(key, stored, _now_iso())
    get_audit_repo().log_action(
        AuditAction.SETTING_UPDATE,
        target_type="setting",
        target_id=key,
        actor_user_id=acting_profile.id,
        actor_role=acting_profile.role,
        metadata={"key": key, "value": stored},
    )
    log.info(f"Setting {key} set to {stored} by {acting_profile.id}")
    return stored
