"""Application layer contracts for orchestrating high-level flows."""

from .access_guard import Decision, DecisionKind, decide, dashboard_for, resolve_route
from .domain_models import Redemption, Reward, SystemSetting, WasteReport, round_half_up
from .errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    InvalidCredentialsError,
    InvalidStateTransition,
    NotFound,
    PCIError,
    PersistenceError,
    UserAlreadyExistsError,
    ValidationFailure,
)
from .session_models import Identity, Profile, Role, is_admin, is_agent, is_approved

__all__ = [
    "AuthenticationFailure",
    "AuthorizationFailure",
    "Decision",
    "DecisionKind",
    "Identity",
    "InvalidCredentialsError",
    "InvalidStateTransition",
    "NotFound",
    "PCIError",
    "PersistenceError",
    "Profile",
    "Redemption",
    "Reward",
    "Role",
    "SystemSetting",
    "UserAlreadyExistsError",
    "ValidationFailure",
    "WasteReport",
    "dashboard_for",
    "decide",
    "is_admin",
    "is_agent",
    "is_approved",
    "resolve_route",
    "round_half_up",
]
