"""Route table and the single access decision used by every protected page."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .session_models import Identity, Profile

ANY_AUTHENTICATED = "authenticated"

HOME = "/"
LOGIN = "/login"
PENDING_APPROVAL = "/pending-approval"
NOT_FOUND = "/404"

DASHBOARDS = {
    "user": "/user-dashboard",
    "agent": "/agent-dashboard",
    "admin": "/admin-dashboard",
}

# path -> required role (None: public, ANY_AUTHENTICATED: any signed-in identity)
ROUTES = {
    "/": None,
    "/about": None,
    "/education": None,
    "/leaderboard": None,
    "/login": None,
    "/register": None,
    "/pending-approval": None,
    "/user-dashboard": "user",
    "/agent-dashboard": "agent",
    "/admin-dashboard": "admin",
    "/profile": ANY_AUTHENTICATED,
}


class DecisionKind(str, Enum):
    WAIT = "wait"
    RENDER = "render"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_PENDING = "redirect_pending"
    REDIRECT_OWN_DASHBOARD = "redirect_own_dashboard"
    REDIRECT_HOME = "redirect_home"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    role: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.kind not in (DecisionKind.WAIT, DecisionKind.RENDER)

    @property
    def target(self) -> Optional[str]:
        """Route path to navigate to, or None when nothing should navigate."""
        if self.kind == DecisionKind.REDIRECT_LOGIN:
            return LOGIN
        if self.kind == DecisionKind.REDIRECT_PENDING:
            return PENDING_APPROVAL
        if self.kind == DecisionKind.REDIRECT_OWN_DASHBOARD:
            return DASHBOARDS[self.role]
        if self.kind == DecisionKind.REDIRECT_HOME:
            return HOME
        return None


WAIT = Decision(DecisionKind.WAIT)
RENDER = Decision(DecisionKind.RENDER)
REDIRECT_LOGIN = Decision(DecisionKind.REDIRECT_LOGIN)
REDIRECT_PENDING = Decision(DecisionKind.REDIRECT_PENDING)
REDIRECT_HOME = Decision(DecisionKind.REDIRECT_HOME)


def dashboard_for(role: Optional[str]) -> Optional[str]:
    return DASHBOARDS.get(role)


def decide(
    identity: Optional[Identity],
    profile: Optional[Profile],
    is_loading: bool,
    required_role: Optional[str] = None,
) -> Decision:
    """
    Decide what a protected route does for the current session.

    Rules are evaluated in order; the first match wins:
      1. loading                                   -> WAIT
      2. no identity                               -> REDIRECT_LOGIN
      3. no role required                          -> RENDER
      4. agent route, unapproved agent             -> REDIRECT_PENDING
      5. role mismatch                             -> own dashboard, or HOME
      6. otherwise                                 -> RENDER
    """
    if is_loading:
        return WAIT
    if identity is None:
        return REDIRECT_LOGIN
    if required_role is None or required_role == ANY_AUTHENTICATED:
        return RENDER

    role = profile.role if profile is not None else None
    if required_role == "agent" and role == "agent" and not profile.is_approved:
        return REDIRECT_PENDING
    if role != required_role:
        if role in DASHBOARDS:
            return Decision(DecisionKind.REDIRECT_OWN_DASHBOARD, role=role)
        return REDIRECT_HOME
    return RENDER


def pending_redirect(identity: Optional[Identity], profile: Optional[Profile]) -> Optional[str]:
    """Where the pending-approval page sends its visitor, or None to stay."""
    if identity is None:
        return LOGIN
    if profile is None:
        return None
    if profile.role != "agent":
        return dashboard_for(profile.role) or HOME
    if profile.is_approved:
        return DASHBOARDS["agent"]
    return None


def resolve_route(path: Optional[str]) -> str:
    """Normalise a requested path; unknown paths map to NOT_FOUND."""
    if not path:
        return HOME
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path if path in ROUTES else NOT_FOUND


def required_role_for(path: str) -> Optional[str]:
    return ROUTES.get(path)
