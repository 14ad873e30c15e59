from unittest.mock import MagicMock, patch

import pytest

from infrastructure.repositories import get_profile_repo
from use_cases import agent_approval
from use_cases.session_models import Identity
from use_cases.session_store import SessionStore
from views import pending_view


@pytest.fixture
def agent_store(make_user):
    agent = make_user("agent@pci.test", role="agent", is_approved=False)
    provider = MagicMock()
    provider.authenticate_user.return_value = Identity(id=agent.id, email="agent@pci.test")
    provider.create_runtime_session.return_value = "token-1"
    store = SessionStore(provider, get_profile_repo())
    assert store.sign_in("agent@pci.test", "password123").ok
    return store


def test_check_approval_waits_while_pending(agent_store):
    assert pending_view.check_approval(agent_store) is None
    assert agent_store.profile.is_approved is False


@patch("services.notification_service.send_agent_approved")
def test_check_approval_sees_decision_on_next_tick(_mock_send, agent_store, make_user):
    admin = make_user("admin@pci.test", role="admin")
    agent_approval.approve_agent(agent_store.profile.id, admin)

    # No background poller involved: the tick itself re-reads the profile.
    assert pending_view.check_approval(agent_store) == "/agent-dashboard"
    assert agent_store.profile.is_approved is True


def test_check_approval_sends_removed_agent_to_login(agent_store, make_user):
    admin = make_user("admin@pci.test", role="admin")
    agent_approval.reject_agent(agent_store.profile.id, admin)

    assert pending_view.check_approval(agent_store) == "/login"
    assert agent_store.identity is None


@patch("views.pending_view.session_manager")
def test_render_pending_without_profile_goes_home(mock_session_manager):
    store = MagicMock()
    store.identity = Identity(id="u-1", email="agent@pci.test")
    store.profile = None
    mock_session_manager.get_store.return_value = store

    pending_view.render_pending()

    mock_session_manager.navigate.assert_called_once_with("/")
    mock_session_manager.stop_approval_poller.assert_called_once()
