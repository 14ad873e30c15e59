"""Authentication flow orchestration (application layer)."""

from dataclasses import dataclass
from typing import Literal, Optional

from utils import session_manager

AuthFlowStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class AuthFlowResult:
    """Result contract for auth flow orchestration."""

    status: AuthFlowStatus
    reason: str
    user_id: Optional[str] = None
    role: Optional[str] = None


def ensure_authenticated_session() -> AuthFlowResult:
    """Restore the session from the browser cookie and re-validate the profile."""
    session_manager.init_session_state()
    session_manager.check_and_restore_session()

    store = session_manager.get_store()
    if not store.is_authenticated:
        return AuthFlowResult(status="STOP", reason="auth_required")

    session_manager.validate_current_session()
    if not store.is_authenticated:
        return AuthFlowResult(status="STOP", reason="account_removed")

    profile = store.profile
    return AuthFlowResult(
        status="CONTINUE",
        reason="authenticated",
        user_id=store.current_user.id,
        role=profile.role if profile else None,
    )
