from unittest.mock import MagicMock

import pytest

import auth
from infrastructure.repositories import get_profile_repo
from services import settings_service
from use_cases.errors import InvalidCredentialsError, PersistenceError, UserAlreadyExistsError
from use_cases.session_models import Identity, Profile
from use_cases.session_store import SessionStore

IDENTITY = Identity(id="u-1", email="user@pci.test")
PROFILE = Profile(id="u-1", role="user", first_name="Ada", last_name="Lovelace", points=3)


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.authenticate_user.return_value = IDENTITY
    provider.create_runtime_session.return_value = "token-1"
    return provider


@pytest.fixture
def profiles():
    repo = MagicMock()
    repo.get_profile.return_value = PROFILE
    return repo


def test_sign_in_success(provider, profiles):
    store = SessionStore(provider, profiles)
    seen = []
    store.subscribe(lambda s: seen.append(s.current_user))

    result = store.sign_in("user@pci.test", "password123", user_agent="pytest")

    assert result.ok
    assert store.current_user == IDENTITY
    assert store.profile == PROFILE
    assert store.token == "token-1"
    assert store.is_loading is False
    assert seen == [IDENTITY]
    provider.create_runtime_session.assert_called_once_with("u-1", user_agent="pytest")


def test_sign_in_failure_keeps_state(provider, profiles):
    provider.authenticate_user.side_effect = InvalidCredentialsError("Invalid e-mail or password.")
    store = SessionStore(provider, profiles)

    result = store.sign_in("user@pci.test", "nope")

    assert not result.ok
    assert result.error == "invalid_credentials"
    assert result.message == "Invalid e-mail or password."
    assert store.current_user is None
    assert store.is_loading is False


def test_sign_in_persistence_failure(provider, profiles):
    profiles.get_profile.side_effect = PersistenceError("disk full")
    store = SessionStore(provider, profiles)

    result = store.sign_in("user@pci.test", "password123")

    assert not result.ok
    assert result.error == "persistence"
    assert store.current_user is None


def test_sign_out_clears_and_drops_session(provider, profiles):
    store = SessionStore(provider, profiles)
    store.sign_in("user@pci.test", "password123")

    result = store.sign_out()

    assert result.ok
    assert store.current_user is None
    assert store.profile is None
    assert store.token is None
    provider.drop_runtime_session.assert_called_once_with("token-1", user_id="u-1")


def test_unsubscribe_stops_notifications(provider, profiles):
    store = SessionStore(provider, profiles)
    listener = MagicMock()
    unsubscribe = store.subscribe(listener)
    unsubscribe()
    unsubscribe()

    store.sign_in("user@pci.test", "password123")

    listener.assert_not_called()


def test_failing_listener_does_not_break_sign_in(provider, profiles):
    store = SessionStore(provider, profiles)
    store.subscribe(MagicMock(side_effect=RuntimeError("boom")))
    assert store.sign_in("user@pci.test", "password123").ok


def test_sign_up_rejects_admin_role(provider, profiles):
    store = SessionStore(provider, profiles)
    result = store.sign_up("boss@pci.test", "password123", role="admin")

    assert not result.ok
    assert result.error == "validation"
    provider.create_user.assert_not_called()


def test_sign_up_agent_requires_company_details(provider, profiles):
    store = SessionStore(provider, profiles)
    result = store.sign_up("agent@pci.test", "password123", role="agent", company_name="Acme")

    assert not result.ok
    assert result.error == "validation"


def test_sign_up_agent_uses_default_approval_setting(provider, profiles):
    settings = MagicMock()
    settings.get_default_agent_approval.return_value = True
    store = SessionStore(provider, profiles, settings=settings)

    result = store.sign_up("agent@pci.test", "password123", role="agent",
                           company_name="Acme", business_license="L-1")

    assert result.ok
    assert provider.create_user.call_args.kwargs["is_approved"] is True


def test_sign_up_duplicate(provider, profiles):
    provider.create_user.side_effect = UserAlreadyExistsError("An account with this e-mail already exists.")
    store = SessionStore(provider, profiles)

    result = store.sign_up("user@pci.test", "password123")

    assert not result.ok
    assert result.error == "already_exists"


def test_refresh_profile_picks_up_changes(provider, profiles):
    store = SessionStore(provider, profiles)
    store.sign_in("user@pci.test", "password123")
    richer = Profile(id="u-1", role="user", first_name="Ada", last_name="Lovelace", points=9)
    profiles.get_profile.return_value = richer

    assert store.refresh_profile() == richer
    assert store.profile.points == 9


def test_refresh_profile_drops_late_result_after_sign_out(provider, profiles):
    store = SessionStore(provider, profiles)
    store.sign_in("user@pci.test", "password123")

    def sign_out_mid_read(_user_id):
        store.sign_out()
        return PROFILE

    profiles.get_profile.side_effect = sign_out_mid_read
    store.refresh_profile()

    assert store.current_user is None
    assert store.profile is None


def test_refresh_profile_signs_out_deleted_account(provider, profiles):
    store = SessionStore(provider, profiles)
    store.sign_in("user@pci.test", "password123")
    profiles.get_profile.return_value = None

    assert store.refresh_profile() is None
    assert store.is_authenticated is False


def test_reset_password_never_reveals_accounts(provider, profiles):
    store = SessionStore(provider, profiles)
    result = store.reset_password("nobody@pci.test")
    assert result.ok
    assert "If that e-mail is registered" in result.message


# --- against the real identity provider ---

def test_full_round_trip_with_sqlite(test_db):
    store = SessionStore(auth, get_profile_repo(), settings=settings_service)

    assert store.sign_up("ada@pci.test", "password123", first_name="Ada", last_name="Lovelace").ok
    assert store.sign_in("ADA@pci.test ", "password123").ok
    assert store.profile.role == "user"
    token = store.token

    restored = SessionStore(auth, get_profile_repo())
    assert restored.restore(token) is True
    assert restored.current_user.email == "ada@pci.test"

    store.sign_out()
    assert SessionStore(auth, get_profile_repo()).restore(token) is False


def test_unapproved_agent_can_sign_in(test_db):
    store = SessionStore(auth, get_profile_repo(), settings=settings_service)
    result = store.sign_up("agent@pci.test", "password123", role="agent", first_name="Bo", last_name="Agent",
                           company_name="Acme Recycling", business_license="L-77")
    assert result.ok
    assert "administrator" in result.message

    assert store.sign_in("agent@pci.test", "password123").ok
    assert store.profile.role == "agent"
    assert store.profile.is_approved is False
