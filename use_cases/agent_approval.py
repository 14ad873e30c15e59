"""Agent registration lifecycle: admin approval or removal, and the pending-side poller."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

import config
from infrastructure.repositories import get_audit_repo, get_profile_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from use_cases import rbac_policy
from use_cases.errors import AuthorizationFailure, InvalidStateTransition, NotFound
from use_cases.session_models import Profile

log = logging.getLogger(__name__)


def list_pending_agents() -> List[Profile]:
    return get_profile_repo().list_profiles(role="agent", is_approved=False)


def list_approved_agents() -> List[Profile]:
    return get_profile_repo().list_profiles(role="agent", is_approved=True)


def _load_unapproved_agent(agent_id) -> Profile:
    agent = get_profile_repo().get_profile(agent_id)
    if agent is None or agent.role != "agent":
        raise NotFound(f"Agent {agent_id} not found.")
    if agent.is_approved:
        raise InvalidStateTransition(f"Agent {agent_id} is already approved.")
    return agent


def approve_agent(agent_id, acting_profile: Profile) -> Profile:
    if not rbac_policy.enforce(acting_profile, rbac_policy.APPROVE_AGENT):
        raise AuthorizationFailure("Only administrators can approve agents.")
    _load_unapproved_agent(agent_id)

    repo = get_profile_repo()
    if repo.set_agent_approval(agent_id, True, datetime.now(timezone.utc).isoformat()) != 1:
        raise InvalidStateTransition(f"Agent {agent_id} was decided concurrently.")

    get_audit_repo().log_action(
        AuditAction.AGENT_APPROVE,
        target_type="profile",
        target_id=agent_id,
        actor_user_id=acting_profile.id,
        actor_role=acting_profile.role,
        metadata={"new_status": "approved"},
    )
    approved = repo.get_profile(agent_id)
    log.info(f"Agent {agent_id} approved by {acting_profile.id}")

    from services import notification_service
    identity = repo.get_identity_by_id(agent_id)
    if identity:
        notification_service.send_agent_approved(identity["email"], approved.display_name)
    return approved


def reject_agent(agent_id, acting_profile: Profile) -> None:
    """Remove the application: the identity and its profile are deleted."""
    if not rbac_policy.enforce(acting_profile, rbac_policy.REJECT_AGENT):
        raise AuthorizationFailure("Only administrators can reject agents.")
    agent = _load_unapproved_agent(agent_id)

    if get_profile_repo().delete_identity(agent_id) != 1:
        raise NotFound(f"Agent {agent_id} not found.")

    get_audit_repo().log_action(
        AuditAction.AGENT_REJECT,
        target_type="profile",
        target_id=agent_id,
        actor_user_id=acting_profile.id,
        actor_role=acting_profile.role,
        metadata={"new_status": "removed", "reason": agent.company_name or "rejected"},
    )
    log.info(f"Agent application {agent_id} rejected by {acting_profile.id}")


class ApprovalPoller:
    """
    Re-reads the session's profile every ``interval`` seconds on a daemon
    thread until stopped. ``on_change(profile)`` fires when the refreshed
    profile differs from the previous one; nothing fires after ``stop()``.
    """

    def __init__(self, session_store, interval: float = config.APPROVAL_POLL_SECONDS,
                 on_change: Optional[Callable[[Optional[Profile]], None]] = None):
        self._store = session_store
        self._interval = interval
        self._on_change = on_change
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self):
        if self._thread is not None:
            return self
        self._thread = threading.Thread(target=self._run, name="approval-poller", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None):
        self._stopped.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def poll_once(self) -> Optional[Profile]:
        before = self._store.profile
        profile = self._store.refresh_profile()
        if self._stopped.is_set():
            return profile
        if profile != before and self._on_change is not None:
            self._on_change(profile)
        return profile

    def _run(self):
        while not self._stopped.wait(self._interval):
            try:
                self.poll_once()
            except Exception:
                log.exception("Approval poll failed")
            profile = self._store.profile
            if profile is None or profile.role != "agent" or profile.is_approved:
                # Decision reached (or signed out); nothing left to wait for.
                self._stopped.set()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
