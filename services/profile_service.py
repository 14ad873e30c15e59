import logging
import os
from datetime import datetime, timezone

import config
from infrastructure.repositories import get_audit_repo, get_profile_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from infrastructure.storage.yandex_disk_storage import LocalAvatarStorage, YandexDiskStorage
from use_cases.errors import NotFound, PersistenceError, ValidationFailure
from use_cases.session_models import Profile

log = logging.getLogger(__name__)

ALLOWED_AVATAR_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
MAX_AVATAR_BYTES = 2 * 1024 * 1024


def get_avatar_storage():
    token = config.get_secret("YANDEX_TOKEN")
    if token:
        return YandexDiskStorage(token, root=config.get_secret("YANDEX_AVATAR_ROOT", "PCI/avatars"))
    return LocalAvatarStorage(config.LOCAL_AVATAR_DIR)


def update_profile(profile: Profile, first_name, last_name, company_name=None, business_license=None) -> Profile:
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationFailure("First and last name are required.")

    fields = {"first_name": first_name, "last_name": last_name}
    if profile.role == "agent":
        company_name = (company_name or "").strip()
        business_license = (business_license or "").strip()
        if not company_name or not business_license:
            raise ValidationFailure("Company name and business license are required for agents.")
        fields.update({"company_name": company_name, "business_license": business_license})

    repo = get_profile_repo()
    if repo.update_profile_fields(profile.id, fields, datetime.now(timezone.utc).isoformat()) != 1:
        raise NotFound(f"Profile {profile.id} not found.")
    get_audit_repo().log_action(AuditAction.PROFILE_UPDATE, target_type="profile", target_id=profile.id,
                                actor_user_id=profile.id, actor_role=profile.role,
                                metadata={"fields": sorted(fields)})
    return repo.get_profile(profile.id)


def upload_avatar(profile: Profile, filename: str, data: bytes, storage=None) -> str:
    """Store the avatar as '<id>/avatar.<ext>' (replacing any previous one) and return its URL."""
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if ext not in ALLOWED_AVATAR_EXTENSIONS:
        raise ValidationFailure("Avatar must be a PNG, JPG, GIF or WEBP image.")
    if not data:
        raise ValidationFailure("You must select an image to upload.")
    if len(data) > MAX_AVATAR_BYTES:
        raise ValidationFailure("Avatar must be smaller than 2 MB.")

    storage = storage or get_avatar_storage()
    key = f"{profile.id}/avatar.{ext}"
    try:
        url = storage.upload(key, data)
    except (RuntimeError, OSError) as e:
        log.error(f"Avatar upload failed for {profile.id}: {e}")
        raise PersistenceError("Error uploading avatar.") from e

    if get_profile_repo().update_profile_fields(profile.id, {"avatar_url": url},
                                                datetime.now(timezone.utc).isoformat()) != 1:
        raise NotFound(f"Profile {profile.id} not found.")
    get_audit_repo().log_action(AuditAction.PROFILE_UPDATE, target_type="profile", target_id=profile.id,
                                actor_user_id=profile.id, actor_role=profile.role,
                                metadata={"fields": ["avatar_url"]})
    return url
