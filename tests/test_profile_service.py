import json
from unittest.mock import MagicMock

import pytest

from infrastructure.repositories import get_audit_repo, get_profile_repo
from infrastructure.storage.yandex_disk_storage import LocalAvatarStorage, YandexDiskStorage
from services import profile_service
from use_cases.errors import NotFound, PersistenceError, ValidationFailure
from use_cases.session_models import Profile


def test_update_profile(make_user):
    user = make_user("user@pci.test")

    updated = profile_service.update_profile(user, "  Ada ", "Lovelace")

    assert updated.first_name == "Ada"
    assert updated.display_name == "Ada Lovelace"


def test_update_profile_requires_names(make_user):
    user = make_user("user@pci.test")
    with pytest.raises(ValidationFailure):
        profile_service.update_profile(user, "Ada", " ")


def test_agent_profile_keeps_company_details(make_user):
    agent = make_user("agent@pci.test", role="agent")
    with pytest.raises(ValidationFailure):
        profile_service.update_profile(agent, "Bo", "Agent", company_name="Acme", business_license="")

    updated = profile_service.update_profile(agent, "Bo", "Agent", company_name="Acme", business_license="L-2")
    assert updated.company_name == "Acme"
    assert updated.is_approved is False


def test_upload_avatar_stores_url(make_user):
    user = make_user("user@pci.test")
    storage = MagicMock()
    storage.upload.return_value = "https://yadi.sk/i/abc"

    url = profile_service.upload_avatar(user, "Me.PNG", b"png bytes", storage=storage)

    assert url == "https://yadi.sk/i/abc"
    storage.upload.assert_called_once_with(f"{user.id}/avatar.png", b"png bytes")
    assert get_profile_repo().get_profile(user.id).avatar_url == url


@pytest.mark.parametrize(
    "filename,data",
    [("notes.txt", b"text"), ("avatar.png", b""), ("avatar.png", b"x" * (profile_service.MAX_AVATAR_BYTES + 1))],
)
def test_upload_avatar_validation(make_user, filename, data):
    user = make_user("user@pci.test")
    storage = MagicMock()
    with pytest.raises(ValidationFailure):
        profile_service.upload_avatar(user, filename, data, storage=storage)
    storage.upload.assert_not_called()


def test_upload_failure_keeps_old_avatar(make_user):
    user = make_user("user@pci.test")
    storage = MagicMock()
    storage.upload.side_effect = RuntimeError("Yandex Disk upload failed: HTTP 500")

    with pytest.raises(PersistenceError):
        profile_service.upload_avatar(user, "avatar.jpg", b"jpg", storage=storage)
    assert get_profile_repo().get_profile(user.id).avatar_url is None


def test_upload_avatar_is_audited(make_user):
    user = make_user("user@pci.test")
    storage = MagicMock()
    storage.upload.return_value = "https://disk.example/avatar.png"

    profile_service.upload_avatar(user, "avatar.png", b"png", storage=storage)

    row = get_audit_repo().get_logs(action_filter="PROFILE_UPDATE", limit=1)[0]
    assert row[6] == user.id
    assert json.loads(row[7]) == {"fields": ["avatar_url"]}


def test_upload_avatar_for_missing_profile(make_user):
    user = make_user("user@pci.test")
    ghost = Profile(id="ghost", role="user")
    storage = MagicMock()
    storage.upload.return_value = "https://disk.example/avatar.png"

    with pytest.raises(NotFound):
        profile_service.upload_avatar(ghost, "avatar.png", b"png", storage=storage)
    assert get_profile_repo().get_profile(user.id).avatar_url is None


def test_storage_selection(monkeypatch):
    assert isinstance(profile_service.get_avatar_storage(), LocalAvatarStorage)

    monkeypatch.setenv("YANDEX_TOKEN", "fake_token")
    storage = profile_service.get_avatar_storage()
    assert isinstance(storage, YandexDiskStorage)
    assert storage.root == "PCI/avatars"
