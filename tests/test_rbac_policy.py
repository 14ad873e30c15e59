import pytest

from use_cases import rbac_policy
from use_cases.session_models import Profile

USER = Profile(id="u", role="user")
AGENT = Profile(id="g", role="agent", is_approved=True)
PENDING_AGENT = Profile(id="p", role="agent", is_approved=False)
ADMIN = Profile(id="a", role="admin")


@pytest.mark.parametrize(
    "profile,action,expected",
    [
        (USER, rbac_policy.SUBMIT_REPORT, True),
        (USER, rbac_policy.REDEEM_REWARD, True),
        (USER, rbac_policy.DECIDE_REPORT, False),
        (USER, rbac_policy.VIEW_ALL_REPORTS, False),
        (AGENT, rbac_policy.DECIDE_REPORT, True),
        (AGENT, rbac_policy.SUBMIT_REPORT, False),
        (AGENT, rbac_policy.REDEEM_REWARD, False),
        (PENDING_AGENT, rbac_policy.DECIDE_REPORT, False),
        (PENDING_AGENT, rbac_policy.VIEW_ALL_REPORTS, False),
        (ADMIN, rbac_policy.APPROVE_AGENT, True),
        (ADMIN, rbac_policy.MANAGE_REWARDS, True),
        (ADMIN, rbac_policy.VIEW_AUDIT_LOG, True),
        (ADMIN, rbac_policy.DECIDE_REPORT, False),
        (ADMIN, rbac_policy.REDEEM_REWARD, False),
        (None, rbac_policy.SUBMIT_REPORT, False),
    ],
)
def test_is_allowed(profile, action, expected):
    assert rbac_policy.is_allowed(profile, action) is expected


def test_unknown_role_has_no_rights():
    assert rbac_policy.is_allowed(Profile(id="x", role="guest"), rbac_policy.SUBMIT_REPORT) is False


def test_pending_agent_denial_records_reason(test_db):
    from infrastructure.repositories import get_audit_repo

    assert rbac_policy.enforce(PENDING_AGENT, rbac_policy.DECIDE_REPORT) is False
    assert rbac_policy.enforce(None, rbac_policy.VIEW_AUDIT_LOG) is False

    rows = get_audit_repo().get_logs(action_filter="RBAC_DENIED")
    assert len(rows) == 2
    anonymous, pending = rows
    assert '"not_approved"' in pending[7]
    assert '"insufficient_rights"' in anonymous[7]
    assert anonymous[2] == "SYSTEM"
