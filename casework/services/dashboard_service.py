"""Dashboard service - data for dashboard widgets."""

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from casework.db.enums import PIPELINE_STATUS_ORDER, TERMINAL_STATUSES
from casework.db.models import Case, CaseWorkflowEvent, User
from casework.services import case_service, notification_service


def _status_counts(db: Session, user: User | None = None) -> dict[str, int]:
    query = db.query(Case.status, func.count(Case.id))
    if user is not None and not case_service.sees_all_cases(db, user):
        query = query.filter(
            or_(Case.assigned_user_id == user.id, Case.assigned_counselor_id == user.id)
        )
    return {status: count for status, count in query.group_by(Case.status).all()}


def overview(db: Session, user: User) -> dict:
    """Case totals visible to the user, plus their unread notifications."""
    counts = _status_counts(db, user)
    total = sum(counts.values())
    open_cases = sum(count for status, count in counts.items() if status not in TERMINAL_STATUSES)
    return {
        "total_cases": total,
        "open_cases": open_cases,
        "by_status": counts,
        "unread_notifications": notification_service.get_unread_count(db, user.id),
    }


def case_pipeline(db: Session) -> list[dict]:
    """
    Count per status in canonical order.

    Statuses outside the canonical list (stage-specific or executive-level
    statuses) follow, alphabetically.
    """
    counts = _status_counts(db)
    pipeline = [{"status": status, "count": counts.get(status, 0)} for status in PIPELINE_STATUS_ORDER]
    extra = sorted(status for status in counts if status not in PIPELINE_STATUS_ORDER)
    pipeline.extend({"status": status, "count": counts[status]} for status in extra)
    return pipeline


def recent_activity(db: Session, limit: int = 20) -> list[dict]:
    """Latest ledger events with their case numbers."""
    rows = (
        db.query(CaseWorkflowEvent, Case.case_number)
        .join(Case, Case.id == CaseWorkflowEvent.case_id)
        .order_by(CaseWorkflowEvent.entered_at.desc(), CaseWorkflowEvent.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "case_id": event.case_id,
            "case_number": case_number,
            "stage_name": event.stage_name,
            "action": event.action,
            "entered_at": event.entered_at,
            "entered_by_name": event.entered_by_name,
        }
        for event, case_number in rows
    ]
