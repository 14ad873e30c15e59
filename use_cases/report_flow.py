"""Waste report lifecycle: submission, agent decision and points accrual."""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from infrastructure.repositories import get_audit_repo, get_report_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from services import settings_service
from use_cases import rbac_policy
from use_cases.domain_models import REPORT_STATUSES, TERMINAL_REPORT_STATUSES, WasteReport, round_half_up
from use_cases.errors import AuthorizationFailure, InvalidStateTransition, NotFound, ValidationFailure
from use_cases.session_models import Profile

log = logging.getLogger(__name__)

MAX_WEIGHT_KG = 10_000


def points_for_weight(weight, points_per_kg=1.0) -> int:
    """Points earned for an approved report (5.5 kg at 1 pt/kg -> 6)."""
    return round_half_up(float(weight) * float(points_per_kg))


def _parse_weight(weight) -> float:
    try:
        value = float(weight)
    except (TypeError, ValueError):
        raise ValidationFailure("Weight must be a number of kilograms.")
    if not math.isfinite(value) or value <= 0:
        raise ValidationFailure("Weight must be greater than zero.")
    if value > MAX_WEIGHT_KG:
        raise ValidationFailure(f"Weight cannot exceed {MAX_WEIGHT_KG} kg per report.")
    return value


def submit_report(user_profile: Profile, waste_type, weight, location=None, image_url=None) -> WasteReport:
    if not rbac_policy.enforce(user_profile, rbac_policy.SUBMIT_REPORT):
        raise AuthorizationFailure("Only users can submit waste reports.")
    waste_type = (waste_type or "").strip()
    if not waste_type:
        raise ValidationFailure("Waste type is required.")
    value = _parse_weight(weight)

    report_id = str(uuid.uuid4())
    now_iso = datetime.now(timezone.utc).isoformat()
    repo = get_report_repo()
    repo.insert_report(report_id, user_profile.id, waste_type, value,
                       (location or "").strip() or None, (image_url or "").strip() or None, now_iso)
    get_audit_repo().log_action(
        AuditAction.REPORT_SUBMIT,
        target_type="waste_report",
        target_id=report_id,
        actor_user_id=user_profile.id,
        actor_role=user_profile.role,
        metadata={"weight": value},
    )
    log.info(f"Report {report_id} submitted by {user_profile.id} ({value} kg {waste_type})")
    return repo.get_report(report_id)


def decide_report(report_id, decision, acting_profile: Profile) -> WasteReport:
    """
    Move a pending report to 'approved' or 'rejected'.

    Approval credits the owner with points_for_weight(weight, points_per_kg)
    in the same transaction as the status change.
    """
    if decision not in TERMINAL_REPORT_STATUSES:
        raise ValidationFailure(f"Decision must be one of {TERMINAL_REPORT_STATUSES}.")
    if not rbac_policy.enforce(acting_profile, rbac_policy.DECIDE_REPORT):
        raise AuthorizationFailure("Only approved agents can decide on waste reports.")

    repo = get_report_repo()
    report = repo.get_report(report_id)
    if report is None:
        raise NotFound(f"Waste report {report_id} not found.")
    if not report.is_pending:
        raise InvalidStateTransition(f"Waste report {report_id} is already {report.status}.")

    points = points_for_weight(report.weight, settings_service.get_points_per_kg()) if decision == "approved" else 0
    now_iso = datetime.now(timezone.utc).isoformat()
    success, err = repo.decide_report(report_id, decision, acting_profile.id, points, report.user_id, now_iso)
    if not success:
        if err == "not_found":
            raise NotFound(f"Waste report {report_id} not found.")
        # Lost a race with another agent's decision.
        raise InvalidStateTransition(f"Waste report {report_id} was already decided.")

    get_audit_repo().log_action(
        AuditAction.REPORT_DECIDE,
        target_type="waste_report",
        target_id=report_id,
        actor_user_id=acting_profile.id,
        actor_role=acting_profile.role,
        metadata={"new_status": decision, "points": points, "weight": report.weight},
    )
    log.info(f"Report {report_id} {decision} by agent {acting_profile.id} (+{points} pts)")
    return repo.get_report(report_id)


def list_reports_for_user(user_id) -> List[WasteReport]:
    return get_report_repo().list_reports_for_user(user_id)


def filter_reports(reports: Iterable[WasteReport], search: Optional[str] = None,
                   status: Optional[str] = None) -> List[WasteReport]:
    """Case-insensitive search over type, location and owner name plus a status filter."""
    query = (search or "").strip().lower()
    result = []
    for report in reports:
        if status and report.status != status:
            continue
        if query:
            haystack = [report.waste_type, report.location, report.owner_first_name, report.owner_last_name]
            if not any(query in (field or "").lower() for field in haystack):
                continue
        result.append(report)
    return result


def list_reports(acting_profile: Profile, search: Optional[str] = None,
                 status: Optional[str] = None) -> List[WasteReport]:
    if not rbac_policy.enforce(acting_profile, rbac_policy.VIEW_ALL_REPORTS):
        raise AuthorizationFailure("You are not allowed to browse all waste reports.")
    if status and status not in REPORT_STATUSES:
        raise ValidationFailure(f"Unknown report status '{status}'.")
    return filter_reports(get_report_repo().list_reports(), search=search, status=status)


def count_by_status(reports: Iterable[WasteReport]) -> Dict[str, int]:
    counts = {status: 0 for status in REPORT_STATUSES}
    for report in reports:
        counts[report.status] = counts.get(report.status, 0) + 1
    return counts
