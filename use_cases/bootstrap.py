"""Startup orchestration for application bootstrap."""

import logging
from dataclasses import dataclass
from typing import Literal, Tuple

import auth
from services import settings_service
from use_cases.errors import PersistenceError
from utils import session_manager

log = logging.getLogger(__name__)

StartupStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class StartupResult:
    """Result contract for startup/bootstrap orchestration."""

    status: StartupStatus
    planned_steps: Tuple[str, ...]
    message: str = ""


def run_startup() -> StartupResult:
    """Migrate the database, seed settings, ensure the admin and session state exist."""
    executed_steps = []

    try:
        auth.init_auth_db()
        executed_steps.append("init_auth_db")

        seeded = settings_service.seed_defaults()
        executed_steps.append("seed_settings")
        if seeded:
            log.info(f"Seeded {seeded} default settings")

        if auth.bootstrap_admin():
            executed_steps.append("bootstrap_admin_created")
        else:
            executed_steps.append("bootstrap_admin")
    except PersistenceError as e:
        log.error(f"Startup aborted: {e}")
        return StartupResult(status="STOP", planned_steps=tuple(executed_steps),
                             message="The database is unavailable. Please try again later.")

    session_manager.init_session_state()
    executed_steps.append("init_session_state")

    return StartupResult(status="CONTINUE", planned_steps=tuple(executed_steps))
