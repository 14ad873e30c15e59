import base64
import hashlib
import hmac
import logging
import os
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import config
from infrastructure.repositories import get_audit_repo, get_db_path, get_profile_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from infrastructure.repositories.sqlite_schema import init_db
from use_cases.errors import InvalidCredentialsError, UserAlreadyExistsError, ValidationFailure
from use_cases.session_models import Identity, ROLES

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_ephemeral_secret = None


def _utcnow():
    return datetime.now(timezone.utc)


def init_auth_db():
    init_db(get_db_path())


def _hash_password(password, salt_hex):
    salt = bytes.fromhex(salt_hex)
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, config.PASSWORD_ITERATIONS).hex()


def _make_password(password):
    salt_hex = os.urandom(16).hex()
    return salt_hex, _hash_password(password, salt_hex)


def _verify_password(password, salt_hex, expected_hash):
    candidate = _hash_password(password, salt_hex)
    return hmac.compare_digest(candidate, expected_hash)


def _hash_user_agent(user_agent):
    if not user_agent:
        return None
    return hashlib.sha256(user_agent.encode("utf-8")).hexdigest()


def _get_session_secret():
    global _ephemeral_secret
    secret = config.get_secret("SESSION_SECRET") or config.get_secret("ADMIN_PASSWORD")
    if secret:
        return secret.encode("utf-8")
    if _ephemeral_secret is None:
        log.warning("SESSION_SECRET is not set; signed session tokens will not survive a restart.")
        _ephemeral_secret = secrets.token_bytes(32)
    return _ephemeral_secret


def _encode_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _decode_b64(data: str) -> bytes:
    pad = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + pad)


def _sign_payload(payload: str) -> str:
    sig = hmac.new(_get_session_secret(), payload.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{_encode_b64(payload.encode('utf-8'))}.{sig}"


def _unsign_token(token: str):
    try:
        b64_payload, sig = token.split(".", 1)
        payload = _decode_b64(b64_payload).decode("utf-8")
        expected = hmac.new(_get_session_secret(), payload.encode("utf-8"), hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, sig):
            return None
        user_id, exp_str, _nonce = payload.split(":", 2)
        if int(_utcnow().timestamp()) > int(exp_str):
            return None
        return user_id
    except (ValueError, UnicodeDecodeError):
        return None


def normalize_email(email) -> str:
    return (email or "").strip().lower()


def validate_credentials(email, password):
    if not EMAIL_RE.match(email):
        raise ValidationFailure("Enter a valid e-mail address.")
    if not password or len(password) < config.MIN_PASSWORD_LENGTH:
        raise ValidationFailure(f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters.")


def create_user(email, password, role="user", first_name="", last_name="",
                company_name=None, business_license=None, is_approved=None):
    """Create an identity and its profile; returns the new identity id."""
    email = normalize_email(email)
    validate_credentials(email, password)
    if role not in ROLES:
        raise ValidationFailure(f"Unknown role '{role}'.")
    if is_approved is None:
        is_approved = role != "agent"

    identity_id = str(uuid.uuid4())
    salt_hex, pw_hash = _make_password(password)
    created_at = _utcnow().isoformat()
    success, err = get_profile_repo().create_identity(
        identity_id, email, salt_hex, pw_hash, role, is_approved,
        (first_name or "").strip(), (last_name or "").strip(),
        company_name, business_license, created_at,
    )
    if not success and err == "integrity_error":
        raise UserAlreadyExistsError("An account with this e-mail already exists.")

    get_audit_repo().log_action(
        AuditAction.USER_CREATE,
        target_type="profile",
        target_id=identity_id,
        actor_user_id=identity_id,
        actor_role=role,
        metadata={"role": role, "status": "approved" if is_approved else "pending"},
    )
    log.info(f"Created {role} identity {identity_id}")
    return identity_id


def authenticate_user(email, password) -> Identity:
    email = normalize_email(email)
    now_iso = _utcnow().isoformat()
    now_ts = _utcnow().timestamp()

    repo = get_profile_repo()
    audit = get_audit_repo()

    # 1. Brute-force protection
    limit_dict = repo.get_login_attempts(email)
    if limit_dict:
        attempts = limit_dict["attempts"]
        try:
            last_attempt_time = datetime.fromisoformat(limit_dict["last_attempt"]).timestamp()
        except ValueError:
            last_attempt_time = None
        if last_attempt_time is not None and attempts >= config.MAX_LOGIN_ATTEMPTS:
            elapsed = now_ts - last_attempt_time
            if elapsed < config.LOCKOUT_SECONDS:
                remaining = int(config.LOCKOUT_SECONDS - elapsed)
                audit.log_action(AuditAction.LOGIN_BLOCKED, target_type="identity",
                                 metadata={"attempts": attempts, "cooldown": remaining}, result="deny")
                raise InvalidCredentialsError(f"Too many sign-in attempts. Try again in {remaining} seconds.")
            repo.reset_login_attempts(email)

    # 2. Lookup
    identity = repo.get_identity_by_email(email)
    if not identity:
        repo.record_failed_attempt(email, now_iso)
        audit.log_action(AuditAction.LOGIN_FAIL, target_type="identity",
                         metadata={"reason": "unknown_email"}, result="deny")
        raise InvalidCredentialsError("Invalid e-mail or password.")

    # 3. Verify password
    if not _verify_password(password or "", identity["password_salt"], identity["password_hash"]):
        repo.record_failed_attempt(email, now_iso)
        audit.log_action(AuditAction.LOGIN_FAIL, target_type="identity", target_id=identity["id"],
                         metadata={"reason": "bad_password"}, result="deny")
        raise InvalidCredentialsError("Invalid e-mail or password.")

    # 4. Success; unapproved agents are let in and routed to the pending page.
    repo.delete_login_attempts(email)
    audit.log_action(AuditAction.LOGIN_SUCCESS, target_type="identity",
                     target_id=identity["id"], actor_user_id=identity["id"])
    return Identity(id=identity["id"], email=identity["email"])


def get_identity(identity_id):
    row = get_profile_repo().get_identity_by_id(identity_id)
    return Identity(id=row["id"], email=row["email"]) if row else None


def get_profile(identity_id):
    return get_profile_repo().get_profile(identity_id)


def create_runtime_session(user_id, user_agent=None):
    now = _utcnow()
    expires_at = now + timedelta(days=config.SESSION_TTL_DAYS)
    token = _sign_payload(f"{user_id}:{int(expires_at.timestamp())}:{secrets.token_hex(8)}")
    get_profile_repo().create_session(token, user_id, expires_at.isoformat(), now.isoformat(),
                                      _hash_user_agent(user_agent))
    return token


def resolve_runtime_session(token, user_agent=None):
    """Return the identity id a session token belongs to, or None."""
    if not token or _unsign_token(token) is None:
        return None

    now = _utcnow()
    repo = get_profile_repo()
    row = repo.get_session(token)
    # Signed-out tokens stay dead even though their signature is still valid.
    if not row:
        return None

    user_id, expires_raw, _expected_ua_hash = row
    try:
        expires_at = datetime.fromisoformat(expires_raw)
    except ValueError:
        repo.delete_session(token)
        return None

    if now > expires_at:
        repo.delete_session(token)
        return None

    repo.update_session_last_seen(token, now.isoformat())
    return user_id


def drop_runtime_session(token, user_id=None):
    get_profile_repo().delete_session(token)
    get_audit_repo().log_action(AuditAction.LOGOUT, target_type="identity",
                                target_id=user_id, actor_user_id=user_id)


def _hash_reset_token(token):
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def request_password_reset(email) -> bool:
    """
    Issue a single-use reset token and e-mail it. Always returns True for a
    well-formed address so callers cannot probe which e-mails are registered.
    """
    from services import notification_service

    email = normalize_email(email)
    if not EMAIL_RE.match(email):
        raise ValidationFailure("Enter a valid e-mail address.")

    repo = get_profile_repo()
    identity = repo.get_identity_by_email(email)
    if identity is None:
        log.info("Password reset requested for an unknown e-mail")
        return True

    token = secrets.token_urlsafe(32)
    expires_at = _utcnow() + timedelta(minutes=config.PASSWORD_RESET_TTL_MINUTES)
    repo.create_password_reset(_hash_reset_token(token), identity["id"], expires_at.isoformat())
    get_audit_repo().log_action(AuditAction.PASSWORD_RESET_REQUEST, target_type="identity",
                                target_id=identity["id"])
    notification_service.send_password_reset(email, token)
    return True


def complete_password_reset(token, new_password):
    if not new_password or len(new_password) < config.MIN_PASSWORD_LENGTH:
        raise ValidationFailure(f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters.")
    repo = get_profile_repo()
    user_id = repo.consume_password_reset(_hash_reset_token(token or ""), _utcnow().isoformat())
    if user_id is None:
        raise InvalidCredentialsError("This reset link is invalid or has expired.")
    salt_hex, pw_hash = _make_password(new_password)
    repo.update_password(user_id, salt_hex, pw_hash)
    get_audit_repo().log_action(AuditAction.PASSWORD_RESET, target_type="identity",
                                target_id=user_id, actor_user_id=user_id)
    return user_id


def bootstrap_admin():
    admin_email = normalize_email(config.get_secret("ADMIN_EMAIL"))
    admin_password = config.get_secret("ADMIN_PASSWORD")
    if not admin_email or not admin_password:
        return False

    if get_profile_repo().email_exists(admin_email):
        return False

    try:
        create_user(
            admin_email,
            admin_password,
            role="admin",
            first_name=config.get_secret("ADMIN_FIRST_NAME", "Platform"),
            last_name=config.get_secret("ADMIN_LAST_NAME", "Admin"),
            is_approved=True,
        )
    except UserAlreadyExistsError:
        return False
    return True
