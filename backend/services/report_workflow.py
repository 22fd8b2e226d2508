"""
Report lifecycle rules.

Pure functions only: the status transition table, the fields stamped by
each transition, the manual-review predicate and the per-role update
capabilities. Persistence happens in ReportService.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

from repositories.db_models import Report, ReportStatus, Severity, UserRole
from models.exceptions import InvalidStatusTransitionException

STATUS_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.PENDING: frozenset(
        {ReportStatus.UNDER_REVIEW, ReportStatus.ASSIGNED, ReportStatus.REJECTED}
    ),
    ReportStatus.UNDER_REVIEW: frozenset(
        {ReportStatus.PENDING, ReportStatus.ASSIGNED, ReportStatus.REJECTED}
    ),
    ReportStatus.ASSIGNED: frozenset({ReportStatus.IN_PROGRESS, ReportStatus.PENDING}),
    ReportStatus.IN_PROGRESS: frozenset({ReportStatus.RESOLVED, ReportStatus.ASSIGNED}),
    ReportStatus.RESOLVED: frozenset({ReportStatus.VERIFIED, ReportStatus.IN_PROGRESS}),
    ReportStatus.VERIFIED: frozenset({ReportStatus.CLOSED, ReportStatus.RESOLVED}),
    ReportStatus.CLOSED: frozenset(),
    ReportStatus.REJECTED: frozenset({ReportStatus.PENDING}),
}

# Statuses a worker may move a report into
WORKER_STATUS_CHOICES = frozenset({ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED})

# Fields each role may change through a report update
ROLE_MUTABLE_FIELDS: dict[UserRole, frozenset[str]] = {
    UserRole.CITIZEN: frozenset({"title", "description"}),
    UserRole.WORKER: frozenset({"status", "resolution_notes"}),
    UserRole.ADMIN: frozenset(
        {
            "title",
            "description",
            "status",
            "light_condition",
            "severity",
            "pole_number",
            "address",
            "city",
            "pincode",
            "assigned_to_id",
            "requires_review",
            "review_notes",
            "resolution_notes",
            "estimated_resolution_time",
        }
    ),
}

REVIEW_MESSAGE = "Report requires manual review"


def allowed_transitions(current: ReportStatus) -> frozenset[ReportStatus]:
    return STATUS_TRANSITIONS[ReportStatus(current)]


def validate_transition(current: ReportStatus, requested: ReportStatus) -> None:
    """
    Check that ``requested`` is reachable from ``current`` in one step.

    Staying in the same status is not a transition and is rejected.

    Raises:
        InvalidStatusTransitionException: If the move is not in the table
    """
    current = ReportStatus(current)
    requested = ReportStatus(requested)
    if requested not in STATUS_TRANSITIONS[current]:
        raise InvalidStatusTransitionException(current.value, requested.value)


def compute_status_stamps(
    new_status: ReportStatus,
    actor_id: int,
    now: datetime,
    notes: Optional[str] = None,
    assignee_id: Optional[int] = None,
) -> dict[str, Any]:
    """
    Fields to set on a report entering ``new_status``.

    ``status`` itself is always included. ``assignee_id`` only matters for
    ``assigned``; without it the actor becomes the assignee.
    """
    stamps: dict[str, Any] = {"status": new_status}

    if new_status == ReportStatus.ASSIGNED:
        stamps["assigned_to_id"] = assignee_id if assignee_id is not None else actor_id
        stamps["assigned_at"] = now
    elif new_status == ReportStatus.RESOLVED:
        stamps["resolved_by_id"] = actor_id
        stamps["resolved_at"] = now
        stamps["resolution_notes"] = notes
    elif new_status == ReportStatus.VERIFIED:
        stamps["verified_by_id"] = actor_id
        stamps["verified_at"] = now
    elif new_status == ReportStatus.CLOSED:
        stamps["actual_resolution_time"] = now
    elif new_status == ReportStatus.REJECTED:
        stamps["reviewed_by_id"] = actor_id
        stamps["reviewed_at"] = now
        stamps["review_notes"] = notes

    return stamps


def apply_status_change(
    report: Report,
    new_status: ReportStatus,
    actor_id: int,
    now: datetime,
    notes: Optional[str] = None,
    assignee_id: Optional[int] = None,
) -> dict[str, Any]:
    """
    Validate a transition and set its fields on the report (not committed).

    Returns:
        The fields that were set

    Raises:
        InvalidStatusTransitionException: If the move is not in the table
    """
    new_status = ReportStatus(new_status)
    validate_transition(report.status, new_status)
    stamps = compute_status_stamps(new_status, actor_id, now, notes, assignee_id)
    for field, value in stamps.items():
        setattr(report, field, value)
    return stamps


def requires_review(
    image_warnings: Iterable[Iterable[str]], severity: Severity
) -> bool:
    """
    Decide whether a new report needs manual triage.

    Args:
        image_warnings: Quality warnings of each attached image
        severity: Declared severity

    Returns:
        True if there are no images, any image has a warning, or the
        severity is critical
    """
    warnings_per_image = [list(w) for w in image_warnings]
    if not warnings_per_image:
        return True
    if any(warnings_per_image):
        return True
    return Severity(severity) == Severity.CRITICAL


def filter_updates_for_role(role: UserRole, updates: dict[str, Any]) -> dict[str, Any]:
    """
    Keep only the fields ``role`` may change.

    A worker's status change survives only if it targets a status in
    WORKER_STATUS_CHOICES.
    """
    allowed = ROLE_MUTABLE_FIELDS.get(UserRole(role), frozenset())
    permitted = {k: v for k, v in updates.items() if k in allowed}

    if UserRole(role) == UserRole.WORKER and "status" in permitted:
        if permitted["status"] is None or (
            ReportStatus(permitted["status"]) not in WORKER_STATUS_CHOICES
        ):
            permitted.pop("status")

    return permitted


def review_message(needs_review: bool) -> Optional[str]:
    return REVIEW_MESSAGE if needs_review else None


def duplicate_message(is_duplicate: bool, duplicate_count: int) -> Optional[str]:
    if not is_duplicate:
        return None
    return f"Similar report found nearby ({duplicate_count} reports)"
