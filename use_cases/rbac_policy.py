"""Centralized Role-Based Access Control logic."""

from typing import Optional

from use_cases.session_models import Profile, is_approved

SUBMIT_REPORT = "SUBMIT_REPORT"
REDEEM_REWARD = "REDEEM_REWARD"
DECIDE_REPORT = "DECIDE_REPORT"
VIEW_ALL_REPORTS = "VIEW_ALL_REPORTS"
APPROVE_AGENT = "APPROVE_AGENT"
REJECT_AGENT = "REJECT_AGENT"
MANAGE_REWARDS = "MANAGE_REWARDS"
UPDATE_SETTINGS = "UPDATE_SETTINGS"
VIEW_AUDIT_LOG = "VIEW_AUDIT_LOG"

# role -> actions it may perform; agents additionally need approval.
PERMISSIONS = {
    "user": {SUBMIT_REPORT, REDEEM_REWARD},
    "agent": {DECIDE_REPORT, VIEW_ALL_REPORTS},
    "admin": {VIEW_ALL_REPORTS, APPROVE_AGENT, REJECT_AGENT, MANAGE_REWARDS, UPDATE_SETTINGS, VIEW_AUDIT_LOG},
}


def is_allowed(profile: Optional[Profile], action: str) -> bool:
    if profile is None:
        return False
    if action not in PERMISSIONS.get(profile.role, set()):
        return False
    return is_approved(profile)


def enforce(profile: Optional[Profile], action: str) -> bool:
    """
    Evaluates if the profile is authorized to perform the action.
    Returns True if authorized, False otherwise; denials are audit-logged.
    """
    from infrastructure.repositories import get_audit_repo
    from infrastructure.repositories.sqlite_audit_repository import AuditAction

    authorized = is_allowed(profile, action)

    if not authorized:
        reason = "insufficient_rights"
        if profile is not None and action in PERMISSIONS.get(profile.role, set()):
            reason = "not_approved"
        get_audit_repo().log_action(
             AuditAction.RBAC_DENIED,
             target_type="rbac",
             actor_user_id=profile.id if profile else None,
             actor_role=profile.role if profile else None,
             metadata={"target_action": action, "reason": reason},
             result="deny"
        )

    return authorized
