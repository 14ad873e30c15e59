import itertools

import pytest

from use_cases import access_guard
from use_cases.access_guard import Decision, DecisionKind, decide
from use_cases.session_models import Identity, Profile

IDENTITY = Identity(id="u-1", email="someone@pci.test")


def _profile(role, approved=False):
    return Profile(id="u-1", role=role, is_approved=approved)


def test_loading_always_waits():
    assert decide(None, None, True, "admin").kind == DecisionKind.WAIT
    assert decide(IDENTITY, _profile("admin"), True, "admin").kind == DecisionKind.WAIT


def test_no_identity_redirects_to_login():
    decision = decide(None, None, False, "user")
    assert decision.kind == DecisionKind.REDIRECT_LOGIN
    assert decision.target == "/login"


def test_no_identity_redirects_to_login_even_without_role():
    assert decide(None, None, False, None).kind == DecisionKind.REDIRECT_LOGIN


@pytest.mark.parametrize("role", ["user", "agent", "admin"])
def test_no_required_role_renders(role):
    assert decide(IDENTITY, _profile(role), False, None).kind == DecisionKind.RENDER
    assert decide(IDENTITY, _profile(role), False, access_guard.ANY_AUTHENTICATED).kind == DecisionKind.RENDER


def test_unapproved_agent_on_agent_route_goes_pending():
    decision = decide(IDENTITY, _profile("agent", approved=False), False, "agent")
    assert decision.kind == DecisionKind.REDIRECT_PENDING
    assert decision.target == "/pending-approval"


def test_approved_agent_on_agent_route_renders():
    assert decide(IDENTITY, _profile("agent", approved=True), False, "agent").kind == DecisionKind.RENDER


@pytest.mark.parametrize(
    "role,required,target",
    [
        ("user", "agent", "/user-dashboard"),
        ("user", "admin", "/user-dashboard"),
        ("agent", "user", "/agent-dashboard"),
        ("agent", "admin", "/agent-dashboard"),
        ("admin", "user", "/admin-dashboard"),
        ("admin", "agent", "/admin-dashboard"),
    ],
)
def test_role_mismatch_redirects_to_own_dashboard(role, required, target):
    decision = decide(IDENTITY, _profile(role, approved=True), False, required)
    assert decision.kind == DecisionKind.REDIRECT_OWN_DASHBOARD
    assert decision.role == role
    assert decision.target == target


def test_unapproved_agent_on_user_route_goes_to_own_dashboard():
    decision = decide(IDENTITY, _profile("agent", approved=False), False, "user")
    assert decision.kind == DecisionKind.REDIRECT_OWN_DASHBOARD
    assert decision.target == "/agent-dashboard"


@pytest.mark.parametrize("role", ["user", "agent", "admin"])
def test_matching_role_renders(role):
    assert decide(IDENTITY, _profile(role, approved=True), False, role).kind == DecisionKind.RENDER


def test_missing_profile_with_required_role_redirects_home():
    decision = decide(IDENTITY, None, False, "user")
    assert decision.kind == DecisionKind.REDIRECT_HOME
    assert decision.target == "/"


def test_unknown_role_redirects_home():
    decision = decide(IDENTITY, Profile(id="u-1", role="auditor"), False, "admin")
    assert decision.kind == DecisionKind.REDIRECT_HOME


def test_decide_is_deterministic():
    args = (IDENTITY, _profile("user"), False, "admin")
    assert decide(*args) == decide(*args)


def test_wait_and_render_are_not_redirects():
    assert not access_guard.WAIT.is_redirect
    assert not access_guard.RENDER.is_redirect
    assert access_guard.WAIT.target is None
    assert access_guard.REDIRECT_LOGIN.is_redirect


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, "/"),
        ("", "/"),
        ("/", "/"),
        ("about", "/about"),
        ("/leaderboard/", "/leaderboard"),
        ("/user-dashboard", "/user-dashboard"),
        ("/does-not-exist", "/404"),
    ],
)
def test_resolve_route(raw, expected):
    assert access_guard.resolve_route(raw) == expected


def test_route_table_roles():
    assert access_guard.required_role_for("/") is None
    assert access_guard.required_role_for("/pending-approval") is None
    assert access_guard.required_role_for("/user-dashboard") == "user"
    assert access_guard.required_role_for("/agent-dashboard") == "agent"
    assert access_guard.required_role_for("/admin-dashboard") == "admin"
    assert access_guard.required_role_for("/profile") == access_guard.ANY_AUTHENTICATED


def test_pending_redirect_rules():
    assert access_guard.pending_redirect(None, None) == "/login"
    assert access_guard.pending_redirect(IDENTITY, None) is None
    assert access_guard.pending_redirect(IDENTITY, _profile("agent", approved=False)) is None
    assert access_guard.pending_redirect(IDENTITY, _profile("agent", approved=True)) == "/agent-dashboard"
    assert access_guard.pending_redirect(IDENTITY, _profile("user")) == "/user-dashboard"
    assert access_guard.pending_redirect(IDENTITY, _profile("admin")) == "/admin-dashboard"


OWN = DecisionKind.REDIRECT_OWN_DASHBOARD

# (role, required, approved) -> expected decision for a signed-in, loaded session
GUARD_GRID = {
    ("user", "user", True): access_guard.RENDER,
    ("user", "user", False): access_guard.RENDER,
    ("user", "agent", True): Decision(OWN, role="user"),
    ("user", "agent", False): Decision(OWN, role="user"),
    ("user", "admin", True): Decision(OWN, role="user"),
    ("user", "admin", False): Decision(OWN, role="user"),
    ("agent", "user", True): Decision(OWN, role="agent"),
    ("agent", "user", False): Decision(OWN, role="agent"),
    ("agent", "agent", True): access_guard.RENDER,
    ("agent", "agent", False): access_guard.REDIRECT_PENDING,
    ("agent", "admin", True): Decision(OWN, role="agent"),
    ("agent", "admin", False): Decision(OWN, role="agent"),
    ("admin", "user", True): Decision(OWN, role="admin"),
    ("admin", "user", False): Decision(OWN, role="admin"),
    ("admin", "agent", True): Decision(OWN, role="admin"),
    ("admin", "agent", False): Decision(OWN, role="admin"),
    ("admin", "admin", True): access_guard.RENDER,
    ("admin", "admin", False): access_guard.RENDER,
}


@pytest.mark.parametrize(
    "role,required,approved",
    list(itertools.product(("user", "agent", "admin"), (None, "user", "agent", "admin"), (True, False))),
)
def test_decision_grid(role, required, approved):
    expected = access_guard.RENDER if required is None else GUARD_GRID[(role, required, approved)]

    assert decide(IDENTITY, _profile(role, approved=approved), False, required) == expected
    assert decide(IDENTITY, _profile(role, approved=approved), True, required) == access_guard.WAIT
    assert decide(None, None, False, required) == access_guard.REDIRECT_LOGIN
