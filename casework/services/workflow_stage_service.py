"""Workflow stage catalog: ordering, successor resolution, stage grants and SLA.

Stages are ordered by sort_order, optionally scoped to a case type. A case of
type T sees T's stages plus global stages (case_type_id NULL); at equal
sort_order the type-scoped stage wins.
"""

from datetime import datetime, timedelta, timezone
from typing import TypedDict

from sqlalchemy import case as sql_case, func, or_
from sqlalchemy.orm import Query, Session

from casework.db.enums import Role as RoleName, SlaUnit, StageGrant
from casework.db.models import (
    Case,
    Role,
    User,
    WorkflowStage,
    WorkflowStageRole,
    WorkflowStageUser,
)
from casework.services import permission_service
from casework.services.errors import ConflictError, NotFoundError, ValidationError


# Seeded by `casework seed-defaults`. Executive stages enter at the lowest
# active level; their listed status applies only when no level is active.
DEFAULT_STAGE_DEFS: list[dict] = [
    {"stage_key": "draft", "stage_name": "Draft", "associated_statuses": ["draft"]},
    {"stage_key": "case_assignment", "stage_name": "Case Assignment", "associated_statuses": ["assigned"]},
    {"stage_key": "counseling", "stage_name": "Counseling", "associated_statuses": ["in_counseling"]},
    {"stage_key": "cover_letter", "stage_name": "Cover Letter", "associated_statuses": ["cover_letter_generated"]},
    {"stage_key": "welfare_review", "stage_name": "Welfare Review", "associated_statuses": ["submitted_to_welfare"]},
    {"stage_key": "executive_approval", "stage_name": "Executive Approval", "associated_statuses": ["submitted_to_executive_1"]},
    {"stage_key": "finance_disbursement", "stage_name": "Finance Disbursement", "associated_statuses": ["finance_disbursement"]},
    {"stage_key": "completed", "stage_name": "Completed", "associated_statuses": ["completed"]},
]

STAGE_GRANT_ALIASES = {"update": StageGrant.EDIT.value}

# Hours per SLA unit; business days count 8 working hours
SLA_UNIT_HOURS = {
    SlaUnit.HOURS.value: 1,
    SlaUnit.DAYS.value: 24,
    SlaUnit.BUSINESS_DAYS.value: 8,
    SlaUnit.WEEKS.value: 168,
    SlaUnit.MONTHS.value: 730,
}


# =============================================================================
# Queries
# =============================================================================

def _scope_filter(query: Query, case_type_id: int | None) -> Query:
    if case_type_id is None:
        return query.filter(WorkflowStage.case_type_id.is_(None))
    return query.filter(
        or_(WorkflowStage.case_type_id == case_type_id, WorkflowStage.case_type_id.is_(None))
    )


def _tier_order():
    """Order by sort_order, type-scoped before global at the same tier."""
    return (
        WorkflowStage.sort_order.asc(),
        sql_case((WorkflowStage.case_type_id.is_(None), 1), else_=0).asc(),
        WorkflowStage.id.asc(),
    )


def get_stage(db: Session, stage_id: int) -> WorkflowStage | None:
    return db.get(WorkflowStage, stage_id)


def list_stages(
    db: Session,
    case_type_id: int | None = None,
    include_inactive: bool = False,
    all_scopes: bool = False,
) -> list[WorkflowStage]:
    """List stages visible to a case type (or every stage with all_scopes)."""
    query = db.query(WorkflowStage)
    if not all_scopes:
        query = _scope_filter(query, case_type_id)
    if not include_inactive:
        query = query.filter(WorkflowStage.is_active.is_(True))
    return query.order_by(*_tier_order()).all()


def first_stage(db: Session, case_type_id: int | None) -> WorkflowStage | None:
    """Lowest sort_order active stage for the case type."""
    query = _scope_filter(
        db.query(WorkflowStage).filter(WorkflowStage.is_active.is_(True)), case_type_id
    )
    return query.order_by(*_tier_order()).first()


def find_stage_by_key_pattern(
    db: Session,
    pattern: str,
    case_type_id: int | None,
    exclude_pattern: str | None = None,
) -> WorkflowStage | None:
    """First active stage whose stage_key contains `pattern`."""
    query = _scope_filter(
        db.query(WorkflowStage).filter(
            WorkflowStage.is_active.is_(True),
            WorkflowStage.stage_key.ilike(f"%{pattern}%"),
        ),
        case_type_id,
    )
    if exclude_pattern:
        query = query.filter(~WorkflowStage.stage_key.ilike(f"%{exclude_pattern}%"))
    return query.order_by(*_tier_order()).first()


def resolve_next_stage(
    db: Session,
    current: WorkflowStage,
    case_type_id: int | None,
    explicit_next_stage_id: int | None = None,
) -> WorkflowStage | None:
    """
    Resolve the stage a case moves to from `current`.

    Order: caller's explicit id, then current.next_stage_id, then the smallest
    sort_order strictly greater than current's (type-scoped preferred).
    Returns None when there is no further stage.
    """
    if explicit_next_stage_id is not None:
        explicit = db.get(WorkflowStage, explicit_next_stage_id)
        if not explicit or not explicit.is_active:
            raise NotFoundError("Next workflow stage not found")
        return explicit

    if current.next_stage_id:
        linked = db.get(WorkflowStage, current.next_stage_id)
        if linked and linked.is_active:
            return linked

    query = _scope_filter(
        db.query(WorkflowStage).filter(
            WorkflowStage.is_active.is_(True),
            WorkflowStage.sort_order > current.sort_order,
            WorkflowStage.id != current.id,
        ),
        case_type_id,
    )
    return query.order_by(*_tier_order()).first()


# =============================================================================
# CRUD
# =============================================================================

def _key_taken(
    db: Session, stage_key: str, case_type_id: int | None, exclude_id: int | None = None
) -> bool:
    query = db.query(WorkflowStage).filter(
        WorkflowStage.stage_key == stage_key,
        WorkflowStage.case_type_id.is_(None)
        if case_type_id is None
        else WorkflowStage.case_type_id == case_type_id,
    )
    if exclude_id is not None:
        query = query.filter(WorkflowStage.id != exclude_id)
    return db.query(query.exists()).scalar()


def _validate_sla(unit: str | None, field: str) -> None:
    if unit is not None and unit not in SLA_UNIT_HOURS:
        raise ValidationError(f"Invalid {field}: {unit}")


def create_stage(
    db: Session,
    stage_key: str,
    stage_name: str,
    *,
    description: str | None = None,
    sort_order: int | None = None,
    case_type_id: int | None = None,
    next_stage_id: int | None = None,
    associated_statuses: list[str] | None = None,
    requires_comments_on_reject: bool = False,
    sla_value: int | None = None,
    sla_unit: str | None = None,
    sla_warning_value: int | None = None,
    sla_warning_unit: str | None = None,
) -> WorkflowStage:
    """
    Create a stage.

    sort_order defaults to one past the current maximum in the same scope.
    Raises ConflictError if stage_key is already used in that scope.
    """
    stage_key = stage_key.strip().lower()
    if not stage_key or not stage_name.strip():
        raise ValidationError("stage_key and stage_name are required")
    if _key_taken(db, stage_key, case_type_id):
        raise ConflictError(f"Stage key '{stage_key}' already exists")
    _validate_sla(sla_unit, "sla_unit")
    _validate_sla(sla_warning_unit, "sla_warning_unit")
    if next_stage_id is not None and not db.get(WorkflowStage, next_stage_id):
        raise NotFoundError("Next workflow stage not found")

    if sort_order is None:
        max_order = _scope_filter(
            db.query(func.max(WorkflowStage.sort_order)), case_type_id
        ).scalar()
        sort_order = (max_order or 0) + 1

    stage = WorkflowStage(
        stage_key=stage_key,
        stage_name=stage_name.strip(),
        description=description,
        sort_order=sort_order,
        case_type_id=case_type_id,
        next_stage_id=next_stage_id,
        associated_statuses=[s for s in (associated_statuses or []) if s] or None,
        requires_comments_on_reject=requires_comments_on_reject,
        sla_value=sla_value,
        sla_unit=sla_unit,
        sla_warning_value=sla_warning_value,
        sla_warning_unit=sla_warning_unit,
        is_active=True,
    )
    db.add(stage)
    db.commit()
    db.refresh(stage)
    return stage


UPDATABLE_STAGE_FIELDS = (
    "stage_name",
    "description",
    "sort_order",
    "next_stage_id",
    "associated_statuses",
    "requires_comments_on_reject",
    "sla_value",
    "sla_unit",
    "sla_warning_value",
    "sla_warning_unit",
    "is_active",
)


def update_stage(db: Session, stage: WorkflowStage, changes: dict) -> WorkflowStage:
    """Apply partial changes. stage_key and case_type_id are immutable."""
    if "next_stage_id" in changes and changes["next_stage_id"] is not None:
        if changes["next_stage_id"] == stage.id:
            raise ValidationError("A stage cannot be its own successor")
        if not db.get(WorkflowStage, changes["next_stage_id"]):
            raise NotFoundError("Next workflow stage not found")
    _validate_sla(changes.get("sla_unit"), "sla_unit")
    _validate_sla(changes.get("sla_warning_unit"), "sla_warning_unit")

    for field in UPDATABLE_STAGE_FIELDS:
        if field in changes:
            setattr(stage, field, changes[field])
    db.commit()
    db.refresh(stage)
    return stage


def deactivate_stage(db: Session, stage: WorkflowStage) -> WorkflowStage:
    """Soft-delete. Blocked while cases sit on the stage."""
    in_use = db.query(Case).filter(Case.current_workflow_stage_id == stage.id).count()
    if in_use:
        raise ConflictError(f"Stage is in use by {in_use} case(s)")
    stage.is_active = False
    db.commit()
    return stage


def restore_stage(db: Session, stage: WorkflowStage) -> WorkflowStage:
    stage.is_active = True
    db.commit()
    return stage


def reorder_stages(db: Session, ordered_stage_ids: list[int]) -> list[WorkflowStage]:
    """Assign sort_order 1..n in the given order."""
    ordered_ids = list(dict.fromkeys(ordered_stage_ids))
    stages = db.query(WorkflowStage).filter(WorkflowStage.id.in_(ordered_ids)).all()
    stage_map = {s.id: s for s in stages}
    missing = [sid for sid in ordered_ids if sid not in stage_map]
    if missing:
        raise NotFoundError(f"Stage ID {missing[0]} not found")
    for index, stage_id in enumerate(ordered_ids):
        stage_map[stage_id].sort_order = index + 1
    db.commit()
    return [stage_map[sid] for sid in ordered_ids]


# =============================================================================
# Stage Grants
# =============================================================================

def _normalize_flags(flags: dict) -> dict:
    normalized = {}
    for name, value in flags.items():
        name = STAGE_GRANT_ALIASES.get(name, name)
        if name not in StageGrant._value2member_map_:
            raise ValidationError(f"Unknown stage grant '{name}'")
        normalized[f"can_{name}"] = bool(value)
    return normalized


def set_role_grant(db: Session, stage: WorkflowStage, role_id: int, flags: dict) -> WorkflowStageRole:
    """Create or update a role's grant on a stage."""
    if not db.get(Role, role_id):
        raise NotFoundError("Role not found")
    grant = db.query(WorkflowStageRole).filter(
        WorkflowStageRole.workflow_stage_id == stage.id,
        WorkflowStageRole.role_id == role_id,
    ).first()
    if not grant:
        grant = WorkflowStageRole(workflow_stage_id=stage.id, role_id=role_id)
        db.add(grant)
    for column, value in _normalize_flags(flags).items():
        setattr(grant, column, value)
    db.commit()
    db.refresh(grant)
    return grant


def remove_role_grant(db: Session, stage: WorkflowStage, role_id: int) -> bool:
    deleted = db.query(WorkflowStageRole).filter(
        WorkflowStageRole.workflow_stage_id == stage.id,
        WorkflowStageRole.role_id == role_id,
    ).delete()
    db.commit()
    return bool(deleted)


def set_user_grant(db: Session, stage: WorkflowStage, user_id: int, flags: dict) -> WorkflowStageUser:
    """Create or update a user's grant on a stage."""
    if not db.get(User, user_id):
        raise NotFoundError("User not found")
    grant = db.query(WorkflowStageUser).filter(
        WorkflowStageUser.workflow_stage_id == stage.id,
        WorkflowStageUser.user_id == user_id,
    ).first()
    if not grant:
        grant = WorkflowStageUser(workflow_stage_id=stage.id, user_id=user_id)
        db.add(grant)
    for column, value in _normalize_flags(flags).items():
        setattr(grant, column, value)
    db.commit()
    db.refresh(grant)
    return grant


def remove_user_grant(db: Session, stage: WorkflowStage, user_id: int) -> bool:
    deleted = db.query(WorkflowStageUser).filter(
        WorkflowStageUser.workflow_stage_id == stage.id,
        WorkflowStageUser.user_id == user_id,
    ).delete()
    db.commit()
    return bool(deleted)


def check_stage_permission(db: Session, user: User, stage: WorkflowStage, action: str) -> bool:
    """
    Check a stage-scoped grant.

    super_admin passes everywhere. Otherwise a role grant through any of the
    user's active roles, or a direct user grant, must carry can_<action>.
    """
    action = STAGE_GRANT_ALIASES.get(action, action)
    if action not in StageGrant._value2member_map_:
        return False

    role_names = permission_service.get_user_role_names(db, user)
    if RoleName.SUPER_ADMIN.value in role_names:
        return True

    column = f"can_{action}"
    role_ids = [r.id for r in db.query(Role).filter(Role.name.in_(role_names), Role.is_active.is_(True))]
    if role_ids:
        via_role = db.query(WorkflowStageRole).filter(
            WorkflowStageRole.workflow_stage_id == stage.id,
            WorkflowStageRole.role_id.in_(role_ids),
            getattr(WorkflowStageRole, column).is_(True),
        ).first()
        if via_role:
            return True

    via_user = db.query(WorkflowStageUser).filter(
        WorkflowStageUser.workflow_stage_id == stage.id,
        WorkflowStageUser.user_id == user.id,
        getattr(WorkflowStageUser, column).is_(True),
    ).first()
    return via_user is not None


# =============================================================================
# SLA
# =============================================================================

class SlaStatus(TypedDict):
    status: str  # on_time | warning | breached
    hours_elapsed: float
    hours_remaining: float | None
    hours_overdue: float
    sla_hours: float | None
    warning_hours: float | None


def _to_hours(value: int | None, unit: str | None) -> float | None:
    if not value or not unit or unit not in SLA_UNIT_HOURS:
        return None
    return float(value * SLA_UNIT_HOURS[unit])


def _business_hours_between(start: datetime, end: datetime) -> float:
    """8 hours per weekday, pro-rated for partial days."""
    hours = 0.0
    cursor = start
    while cursor < end:
        next_midnight = (cursor + timedelta(days=1)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        segment_end = min(next_midnight, end)
        if cursor.weekday() < 5:
            hours += (segment_end - cursor).total_seconds() / 86400 * 8
        cursor = segment_end
    return hours


def compute_sla_status(
    stage: WorkflowStage | None,
    entered_at: datetime | None,
    now: datetime | None = None,
) -> SlaStatus:
    """SLA standing of a case that entered `stage` at `entered_at`."""
    default: SlaStatus = {
        "status": "on_time",
        "hours_elapsed": 0.0,
        "hours_remaining": None,
        "hours_overdue": 0.0,
        "sla_hours": None,
        "warning_hours": None,
    }
    sla_hours = _to_hours(stage.sla_value, stage.sla_unit) if stage else None
    if sla_hours is None or entered_at is None:
        return default

    now = now or datetime.now(timezone.utc)
    if entered_at.tzinfo is None:
        entered_at = entered_at.replace(tzinfo=timezone.utc)
    if stage.sla_unit == SlaUnit.BUSINESS_DAYS.value:
        elapsed = _business_hours_between(entered_at, now)
    else:
        elapsed = max(0.0, (now - entered_at).total_seconds() / 3600)
    warning_hours = _to_hours(stage.sla_warning_value, stage.sla_warning_unit)

    if elapsed >= sla_hours:
        status, remaining, overdue = "breached", 0.0, elapsed - sla_hours
    elif warning_hours is not None and elapsed >= warning_hours:
        status, remaining, overdue = "warning", sla_hours - elapsed, 0.0
    else:
        status, remaining, overdue = "on_time", sla_hours - elapsed, 0.0

    return {
        "status": status,
        "hours_elapsed": round(elapsed, 2),
        "hours_remaining": round(remaining, 2),
        "hours_overdue": round(overdue, 2),
        "sla_hours": sla_hours,
        "warning_hours": warning_hours,
    }
