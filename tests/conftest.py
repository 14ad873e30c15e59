import pytest

import auth
import config
import infrastructure.repositories as repositories
from infrastructure.repositories.sqlite_schema import init_db


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    monkeypatch.setattr(config, "PASSWORD_ITERATIONS", 1_000)


@pytest.fixture(autouse=True)
def no_external_secrets(monkeypatch):
    # Keeps e-mail and avatar uploads away from real providers.
    for key in ("BREVO_API_KEY", "YANDEX_TOKEN", "ADMIN_EMAIL", "ADMIN_PASSWORD", "SESSION_SECRET", "PCI_DB_PATH"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret")


@pytest.fixture
def test_db(tmp_path):
    db_file = str(tmp_path / "pci_test.db")
    original_db = repositories.DB_PATH
    repositories.DB_PATH = db_file
    init_db(db_file)
    yield db_file
    repositories.DB_PATH = original_db


@pytest.fixture
def make_user(test_db):
    """Create an identity + profile and return its Profile."""
    def _make(email, role="user", is_approved=None, password="password123", **fields):
        if role == "agent":
            fields.setdefault("company_name", "Green Haulers")
            fields.setdefault("business_license", "LIC-001")
        user_id = auth.create_user(email, password, role=role,
                                   first_name=fields.pop("first_name", "Test"),
                                   last_name=fields.pop("last_name", role.title()),
                                   is_approved=is_approved, **fields)
        return repositories.get_profile_repo().get_profile(user_id)
    return _make
