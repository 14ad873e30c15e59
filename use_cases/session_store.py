"""
Explicit session state: who is signed in and what their profile says.

One SessionStore lives per browser session (see utils.session_manager). Its
collaborators are injected so the store, the access guard and the dashboards
can be exercised without a running Streamlit app:

    identity_provider  -- authenticate_user, create_user, create_runtime_session,
                          resolve_runtime_session, drop_runtime_session,
                          get_identity, request_password_reset
                          (the ``auth`` module satisfies this)
    profile_repo       -- get_profile(identity_id) -> Profile | None
    settings           -- get_default_agent_approval() -> bool
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional

from use_cases.errors import (
    AuthenticationFailure,
    PCIError,
    UserAlreadyExistsError,
    ValidationFailure,
)
from use_cases.session_models import Identity, Profile, SELF_SERVICE_ROLES

log = logging.getLogger(__name__)

AuthErrorCode = Literal[
    "invalid_credentials", "validation", "already_exists", "persistence", "not_signed_in"
]


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a session operation; failures never escape as exceptions."""

    ok: bool
    message: str = ""
    error: Optional[AuthErrorCode] = None


class SessionStore:
    def __init__(self, identity_provider, profile_repo, settings=None):
        self._identity_provider = identity_provider
        self._profile_repo = profile_repo
        self._settings = settings
        self._lock = threading.RLock()
        self._listeners: List[Callable[["SessionStore"], None]] = []
        self.identity: Optional[Identity] = None
        self.profile: Optional[Profile] = None
        self.token: Optional[str] = None
        self.is_loading = False

    # --- observation ---

    @property
    def current_user(self) -> Optional[Identity]:
        return self.identity

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    def subscribe(self, callback: Callable[["SessionStore"], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _notify(self):
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback(self)
            except Exception:
                log.exception("Session listener failed")

    def _set(self, identity, profile, token):
        with self._lock:
            self.identity = identity
            self.profile = profile
            self.token = token
        self._notify()

    # --- operations ---

    def sign_in(self, email, password, user_agent=None) -> AuthResult:
        self.is_loading = True
        try:
            identity = self._identity_provider.authenticate_user(email, password)
            profile = self._profile_repo.get_profile(identity.id)
            token = self._identity_provider.create_runtime_session(identity.id, user_agent=user_agent)
        except AuthenticationFailure as e:
            return AuthResult(ok=False, message=str(e), error="invalid_credentials")
        except PCIError as e:
            log.error(f"Sign-in failed: {e}")
            return AuthResult(ok=False, message="Sign-in is unavailable right now. Please try again.",
                              error="persistence")
        finally:
            self.is_loading = False
        self._set(identity, profile, token)
        return AuthResult(ok=True, message="Signed in successfully.")

    def sign_up(self, email, password, role="user", first_name="", last_name="",
                company_name=None, business_license=None) -> AuthResult:
        if role not in SELF_SERVICE_ROLES:
            return AuthResult(ok=False, message="This account type cannot be registered.", error="validation")
        if role == "agent" and not ((company_name or "").strip() and (business_license or "").strip()):
            return AuthResult(ok=False, message="Company name and business license are required for agents.",
                              error="validation")

        is_approved = None
        if role == "agent":
            is_approved = bool(self._settings.get_default_agent_approval()) if self._settings else False

        self.is_loading = True
        try:
            self._identity_provider.create_user(
                email, password, role=role,
                first_name=first_name, last_name=last_name,
                company_name=(company_name or "").strip() or None,
                business_license=(business_license or "").strip() or None,
                is_approved=is_approved,
            )
        except UserAlreadyExistsError as e:
            return AuthResult(ok=False, message=str(e), error="already_exists")
        except ValidationFailure as e:
            return AuthResult(ok=False, message=str(e), error="validation")
        except PCIError as e:
            log.error(f"Sign-up failed: {e}")
            return AuthResult(ok=False, message="Registration failed. Please try again.", error="persistence")
        finally:
            self.is_loading = False

        if role == "agent" and not is_approved:
            return AuthResult(ok=True, message="Registration received. An administrator will review your application.")
        return AuthResult(ok=True, message="Registration successful. You can now sign in.")

    def sign_out(self) -> AuthResult:
        token, identity = self.token, self.identity
        if token:
            try:
                self._identity_provider.drop_runtime_session(token, user_id=identity.id if identity else None)
            except PCIError as e:
                log.warning(f"Could not drop runtime session: {e}")
        self._set(None, None, None)
        return AuthResult(ok=True, message="Signed out.")

    def refresh_profile(self) -> Optional[Profile]:
        identity = self.identity
        if identity is None:
            return None
        try:
            profile = self._profile_repo.get_profile(identity.id)
        except PCIError as e:
            log.warning(f"Profile refresh failed for {identity.id}: {e}")
            return self.profile
        if self.identity is None or self.identity.id != identity.id:
            # Signed out (or switched) while the read was in flight; drop the late result.
            return self.profile
        if profile is None:
            log.info(f"Profile {identity.id} no longer exists; signing out")
            self.sign_out()
            return None
        if profile != self.profile:
            self._set(identity, profile, self.token)
        return profile

    def reset_password(self, email) -> AuthResult:
        try:
            self._identity_provider.request_password_reset(email)
        except ValidationFailure as e:
            return AuthResult(ok=False, message=str(e), error="validation")
        except PCIError as e:
            log.error(f"Password reset request failed: {e}")
            return AuthResult(ok=False, message="Could not send the reset e-mail. Please try again.",
                              error="persistence")
        return AuthResult(ok=True, message="If that e-mail is registered, a reset link is on its way.")

    def restore(self, token, user_agent=None) -> bool:
        """Rebuild the session from a runtime session token (browser cookie)."""
        if not token or self.identity is not None:
            return self.identity is not None
        self.is_loading = True
        try:
            user_id = self._identity_provider.resolve_runtime_session(token, user_agent=user_agent)
            if user_id is None:
                return False
            identity = self._identity_provider.get_identity(user_id)
            profile = self._profile_repo.get_profile(user_id) if identity else None
        except PCIError as e:
            log.warning(f"Session restore failed: {e}")
            return False
        finally:
            self.is_loading = False
        if identity is None or profile is None:
            return False
        self._set(identity, profile, token)
        return True
