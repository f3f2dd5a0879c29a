"""Case service - business logic for case records.

Status and stage changes are never written here directly; creation records
its first ledger entry and later moves go through workflow_service.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from casework.core.permissions import LEGACY_ADMIN_ROLES
from casework.db.enums import CaseStatus, CommentType, NotificationType
from casework.db.models import (
    Applicant,
    Case,
    CaseAttachment,
    CaseClosure,
    CaseComment,
    CaseType,
    Jamiat,
    StatusHistory,
    User,
)
from casework.services import (
    applicant_service,
    notification_service,
    permission_service,
    workflow_service,
    workflow_stage_service,
)
from casework.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from casework.services.its_gateway import resolve_org_codes

logger = logging.getLogger(__name__)

CASE_NUMBER_FORMAT = "BS-{:04d}"

EDITABLE_CASE_FIELDS = (
    "description",
    "notes",
    "case_type_id",
    "assigned_user_id",
    "assigned_counselor_id",
)


def format_case_number(case_id: int) -> str:
    return CASE_NUMBER_FORMAT.format(case_id)


# =============================================================================
# Access
# =============================================================================

def _is_assigned(user: User, case: Case) -> bool:
    return user.id in (case.assigned_user_id, case.assigned_counselor_id)


def sees_all_cases(db: Session, user: User) -> bool:
    if set(permission_service.get_user_role_names(db, user)) & LEGACY_ADMIN_ROLES:
        return True
    return permission_service.can_access_all_cases(db, user)


def authorize_case_access(db: Session, user: User, case: Case) -> None:
    """Allow cases:read (in the case's jamiat/jamaat scope) or the case's assignees."""
    if _is_assigned(user, case):
        return
    if set(permission_service.get_user_role_names(db, user)) & LEGACY_ADMIN_ROLES:
        return
    if permission_service.has_permission(
        db, user, "cases", "read", jamiat_id=case.jamiat_id, jamaat_id=case.jamaat_id
    ) and not permission_service.has_permission(db, user, "cases", "case_assigned"):
        return
    raise ForbiddenError("You do not have access to this case")


# =============================================================================
# Queries
# =============================================================================

def get_case(db: Session, case_id: int) -> Case:
    case = (
        db.query(Case)
        .options(joinedload(Case.applicant), joinedload(Case.current_stage))
        .filter(Case.id == case_id)
        .first()
    )
    if not case:
        raise NotFoundError("Case not found")
    return case


def list_cases(
    db: Session,
    user: User,
    *,
    status: str | None = None,
    case_type_id: int | None = None,
    stage_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Case], int]:
    """List cases visible to the user. Returns (items, total)."""
    query = db.query(Case).join(Applicant, Applicant.id == Case.applicant_id)

    if not sees_all_cases(db, user):
        query = query.filter(
            or_(Case.assigned_user_id == user.id, Case.assigned_counselor_id == user.id)
        )
    if status:
        query = query.filter(Case.status == status)
    if case_type_id:
        query = query.filter(Case.case_type_id == case_type_id)
    if stage_id:
        query = query.filter(Case.current_workflow_stage_id == stage_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Case.case_number.ilike(term),
                Applicant.its_number.ilike(term),
                Applicant.first_name.ilike(term),
                Applicant.last_name.ilike(term),
                Applicant.full_name.ilike(term),
            )
        )

    total = query.count()
    items = (
        query.options(joinedload(Case.applicant), joinedload(Case.current_stage))
        .order_by(Case.created_at.desc(), Case.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_status_history(db: Session, case_id: int) -> list[StatusHistory]:
    return (
        db.query(StatusHistory)
        .filter(StatusHistory.case_id == case_id)
        .order_by(StatusHistory.created_at, StatusHistory.id)
        .all()
    )


# =============================================================================
# Create / Update / Delete
# =============================================================================

def _auto_create_applicant(db: Session, applicant_data: dict) -> int | None:
    """Create (or reuse by ITS number) an applicant. Failures fall back to None."""
    try:
        existing = applicant_service.get_by_its(db, (applicant_data.get("its_number") or "").strip())
        if existing:
            return existing.id
        applicant = applicant_service.create_applicant(db, applicant_data, commit=False)
        return applicant.id
    except (ValidationError, ConflictError) as exc:
        logger.warning("Applicant auto-create skipped: %s", exc.message)
        return None


def create_case(db: Session, data: dict, actor: User) -> Case:
    """
    Create a case on the first workflow stage.

    Writes the case, its number, one ledger entry and one status_history
    row in a single transaction.
    """
    applicant_id = data.get("applicant_id")
    if data.get("applicant_data"):
        applicant_id = _auto_create_applicant(db, data["applicant_data"]) or applicant_id

    case_type_id = data.get("case_type_id")
    if not applicant_id or not case_type_id:
        raise ValidationError("Applicant and case type are required")
    if not db.get(Applicant, applicant_id):
        raise NotFoundError("Applicant not found")
    if not db.get(CaseType, case_type_id):
        raise NotFoundError("Case type not found")

    jamiat_pk, jamaat_pk = resolve_org_codes(db, data.get("jamiat_id"), data.get("jamaat_id"))
    assignee_id = data.get("assigned_user_id")
    counselor_id = data.get("assigned_counselor_id")
    for user_id in (assignee_id, counselor_id):
        if user_id and not db.get(User, user_id):
            raise NotFoundError("Assigned user not found")

    assigned = bool(assignee_id or counselor_id)
    status = CaseStatus.ASSIGNED.value if assigned else CaseStatus.DRAFT.value
    stage = workflow_stage_service.first_stage(db, case_type_id)
    now = datetime.now(timezone.utc)

    case = Case(
        applicant_id=applicant_id,
        case_type_id=case_type_id,
        status=status,
        current_workflow_stage_id=stage.id if stage else None,
        current_stage_entered_at=now if stage else None,
        jamiat_id=jamiat_pk,
        jamaat_id=jamaat_pk,
        assigned_user_id=assignee_id,
        assigned_counselor_id=counselor_id,
        description=data.get("description"),
        notes=data.get("notes"),
        created_by=actor.id,
    )
    try:
        db.add(case)
        db.flush()
        case.case_number = format_case_number(case.id)

        workflow_service.append_event(db, case, stage, "case_created", actor)
        workflow_service.record_status(
            db,
            case,
            None,
            status,
            actor,
            "Case created and assigned" if assigned else "Case created",
        )
        if assigned:
            notification_service.notify_users(
                db,
                [uid for uid in (assignee_id, counselor_id) if uid],
                case,
                NotificationType.CASE_ASSIGNED,
                f"Case {case.case_number} assigned to you",
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(case)
    logger.info("Case created", extra={"case_id": case.id, "user_id": actor.id})
    return case


def update_case(db: Session, case: Case, changes: dict, actor: User) -> Case:
    """Update editable fields. Assigning a draft case moves it to `assigned`."""
    if "case_type_id" in changes and changes["case_type_id"] is not None:
        if not db.get(CaseType, changes["case_type_id"]):
            raise NotFoundError("Case type not found")

    newly_assigned = []
    for field in EDITABLE_CASE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field in ("assigned_user_id", "assigned_counselor_id") and value:
            if not db.get(User, value):
                raise NotFoundError("Assigned user not found")
            if value != getattr(case, field):
                newly_assigned.append(value)
        setattr(case, field, value)

    if "jamiat_id" in changes or "jamaat_id" in changes:
        # A jamaat code alone is looked up within the case's current jamiat
        if "jamiat_id" in changes:
            jamiat_code = changes["jamiat_id"]
        else:
            current = db.get(Jamiat, case.jamiat_id) if case.jamiat_id else None
            jamiat_code = current.jamiat_id if current else None
        jamiat_pk, jamaat_pk = resolve_org_codes(db, jamiat_code, changes.get("jamaat_id"))
        if "jamiat_id" in changes:
            case.jamiat_id = jamiat_pk
        if "jamaat_id" in changes:
            case.jamaat_id = jamaat_pk

    if newly_assigned:
        notification_service.notify_users(
            db, newly_assigned, case, NotificationType.CASE_ASSIGNED,
            f"Case {case.case_number} assigned to you",
        )

    if newly_assigned and case.status == CaseStatus.DRAFT.value:
        workflow_service.set_status(
            db, case, CaseStatus.ASSIGNED.value, "case_assigned", actor,
            comments="Case assigned",
        )
    else:
        workflow_service.finish(db, commit=True)
    db.refresh(case)
    return case


def delete_case(db: Session, case: Case) -> None:
    """Physically delete a case. Blocked while attachments exist."""
    has_attachments = db.query(
        db.query(CaseAttachment).filter(CaseAttachment.case_id == case.id).exists()
    ).scalar()
    if has_attachments:
        raise ConflictError("Cannot delete a case that has attachments")
    db.delete(case)
    db.commit()


# =============================================================================
# Comments and Closure
# =============================================================================

def add_comment(
    db: Session,
    case: Case,
    actor: User,
    comment: str,
    comment_type: CommentType = CommentType.GENERAL,
    commit: bool = True,
) -> CaseComment:
    if not comment or not comment.strip():
        raise ValidationError("Comment is required")
    row = CaseComment(
        case_id=case.id,
        user_id=actor.id,
        comment=comment.strip(),
        comment_type=comment_type.value,
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def list_comments(db: Session, case_id: int) -> list[CaseComment]:
    return (
        db.query(CaseComment)
        .filter(CaseComment.case_id == case_id)
        .order_by(CaseComment.created_at, CaseComment.id)
        .all()
    )


def close_case(db: Session, case_id: int, actor: User, reason: str | None) -> CaseClosure:
    if not reason or not reason.strip():
        raise ValidationError("Closure reason is required")
    case = workflow_service.lock_case(db, case_id)
    if case.status == CaseStatus.CLOSED.value:
        raise ValidationError("Case is already closed")

    workflow_service.set_status(
        db, case, CaseStatus.CLOSED.value, "case_closed", actor,
        comments=reason.strip(), commit=False,
    )
    closure = CaseClosure(
        case_id=case.id,
        reason=reason.strip(),
        closed_by=actor.id,
        closed_at=datetime.now(timezone.utc),
    )
    db.add(closure)
    add_comment(db, case, actor, reason, CommentType.CLOSURE, commit=False)
    workflow_service.finish(db, commit=True)
    db.refresh(closure)
    return closure


def get_closure(db: Session, case_id: int) -> CaseClosure:
    closure = db.query(CaseClosure).filter(CaseClosure.case_id == case_id).first()
    if not closure:
        raise NotFoundError("Closure record not found")
    return closure
