"""Workflow transition engine.

Every change to a case's status or stage pointer goes through this module:

- the case row is locked (SELECT ... FOR UPDATE) and versioned, so two
  concurrent transitions cannot both win silently
- each applied transition writes, as one unit: status + stage pointer, one
  case_workflow_events row, one status_history row, and one notification per
  user entitled to the new stage
- any database error rolls the whole unit back

Callers that add their own writes to the same unit (comments, form flags)
pass commit=False and commit once themselves.
"""

import logging
from datetime import datetime, timezone
from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from casework.core.structured_logging import build_log_context
from casework.db.models import (
    Case,
    CaseWorkflowEvent,
    ExecutiveLevel,
    StatusHistory,
    User,
    WorkflowStage,
)
from casework.services import master_service, notification_service, workflow_stage_service
from casework.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


APPLIED = "applied"
UNCHANGED = "unchanged"
NO_NEXT_STAGE = "no_next_stage"
NO_CURRENT_STAGE = "no_current_stage"

DRAFT_STAGE_NAME = "Draft Stage"


class CaseNotFoundError(NotFoundError):
    pass


class StageRegressionError(ConflictError):
    """Move to an earlier stage without a rework action."""


class ConcurrentTransitionError(ConflictError):
    """The case changed underneath this transition."""


class StageRef(TypedDict):
    id: int
    stage_key: str
    stage_name: str


class TransitionResult(TypedDict):
    """Result of a transition attempt."""

    outcome: str  # applied | unchanged | no_next_stage | no_current_stage
    case_id: int
    from_status: str
    new_status: str
    from_stage_id: int | None
    next_stage: StageRef | None
    notified_user_ids: list[int]


def _stage_ref(stage: WorkflowStage | None) -> StageRef | None:
    if stage is None:
        return None
    return {"id": stage.id, "stage_key": stage.stage_key, "stage_name": stage.stage_name}


def _result(
    outcome: str,
    case: Case,
    from_status: str,
    from_stage_id: int | None,
    stage: WorkflowStage | None,
    notified: list[int] | None = None,
) -> TransitionResult:
    return {
        "outcome": outcome,
        "case_id": case.id,
        "from_status": from_status,
        "new_status": case.status,
        "from_stage_id": from_stage_id,
        "next_stage": _stage_ref(stage),
        "notified_user_ids": notified or [],
    }


# =============================================================================
# Unit of work helpers
# =============================================================================

def lock_case(db: Session, case_id: int) -> Case:
    """Load a case with a row lock, refreshing any stale identity-map copy."""
    case = db.execute(
        select(Case)
        .where(Case.id == case_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if case is None:
        raise CaseNotFoundError("Case not found")
    return case


def finish(db: Session, commit: bool) -> None:
    """Commit (or flush) the unit; roll back everything on failure."""
    try:
        if commit:
            db.commit()
        else:
            db.flush()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentTransitionError(
            "Case was modified by another request; reload and retry"
        ) from exc
    except SQLAlchemyError:
        db.rollback()
        raise


def _release(db: Session, commit: bool) -> None:
    if commit:
        db.commit()


def append_event(
    db: Session,
    case: Case,
    stage: WorkflowStage | None,
    action: str,
    actor: User | None,
) -> CaseWorkflowEvent:
    """Append one ledger row. Rows are never updated afterwards."""
    event = CaseWorkflowEvent(
        case_id=case.id,
        stage_id=stage.id if stage else None,
        stage_name=stage.stage_name if stage else DRAFT_STAGE_NAME,
        action=action,
        entered_at=datetime.now(timezone.utc),
        entered_by=actor.id if actor else None,
        entered_by_name=actor.full_name if actor else None,
    )
    db.add(event)
    return event


def record_status(
    db: Session,
    case: Case,
    from_status: str | None,
    to_status: str,
    actor: User | None,
    comments: str | None,
) -> StatusHistory:
    row = StatusHistory(
        case_id=case.id,
        from_status=from_status,
        to_status=to_status,
        changed_by=actor.id if actor else None,
        comments=comments,
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    return row


def first_executive_level(db: Session) -> ExecutiveLevel | None:
    levels = master_service.active_levels(db)
    return levels[0] if levels else None


def is_executive_stage(stage: WorkflowStage | None) -> bool:
    return stage is not None and "executive" in stage.stage_key


# =============================================================================
# Transitions
# =============================================================================

def move_to_stage(
    db: Session,
    case: Case,
    target: WorkflowStage,
    action: str,
    actor: User | None,
    *,
    status: str | None = None,
    comments: str | None = None,
    allow_regression: bool = False,
    commit: bool = True,
) -> TransitionResult:
    """
    Move a (locked) case onto `target`.

    The new status is `status` when given. Executive stages otherwise enter at
    submitted_to_executive_<lowest active level>; other stages take their
    first associated status (or submitted_to_<stage_key>). Moving to a lower
    sort_order needs allow_regression, which only rework actions pass.
    """
    current = case.current_stage
    from_status = case.status
    from_stage_id = case.current_workflow_stage_id
    entry_level = first_executive_level(db) if is_executive_stage(target) else None
    if status:
        new_status = status
    elif entry_level is not None:
        new_status = f"submitted_to_executive_{entry_level.level_number}"
    else:
        new_status = target.first_status
    log_context = build_log_context(
        user_id=actor.id if actor else None, case_id=case.id, stage_id=target.id, action=action
    )

    if current is not None and target.sort_order < current.sort_order and not allow_regression:
        raise StageRegressionError(
            f"Cannot move case back from '{current.stage_name}' to '{target.stage_name}'"
        )

    if from_stage_id == target.id and from_status == new_status:
        logger.info("Workflow transition skipped, case already at target", extra=log_context)
        _release(db, commit)
        return _result(UNCHANGED, case, from_status, from_stage_id, target)

    try:
        stage_changed = from_stage_id != target.id
        case.status = new_status
        if stage_changed:
            case.current_workflow_stage_id = target.id
            case.current_stage = target
            case.current_stage_entered_at = datetime.now(timezone.utc)
            case.current_executive_level = entry_level.level_number if entry_level else None

        append_event(db, case, target, action, actor)
        record_status(db, case, from_status, new_status, actor, comments)
        notified = notification_service.notify_stage_entered(db, case, target, new_status)
    except SQLAlchemyError:
        db.rollback()
        raise
    finish(db, commit)

    logger.info(
        "Workflow transition applied: %s -> %s", from_status, new_status, extra=log_context
    )
    return _result(APPLIED, case, from_status, from_stage_id, target, notified)


def set_status(
    db: Session,
    case: Case,
    new_status: str,
    action: str,
    actor: User | None,
    *,
    comments: str | None = None,
    commit: bool = True,
) -> TransitionResult:
    """Change status without moving stage (rejections, level steps, closure)."""
    from_status = case.status
    stage = case.current_stage
    if from_status == new_status:
        _release(db, commit)
        return _result(UNCHANGED, case, from_status, case.current_workflow_stage_id, stage)

    try:
        case.status = new_status
        append_event(db, case, stage, action, actor)
        record_status(db, case, from_status, new_status, actor, comments)
    except SQLAlchemyError:
        db.rollback()
        raise
    finish(db, commit)

    logger.info(
        "Case status changed: %s -> %s",
        from_status,
        new_status,
        extra=build_log_context(
            user_id=actor.id if actor else None, case_id=case.id, action=action
        ),
    )
    return _result(APPLIED, case, from_status, case.current_workflow_stage_id, stage)


def advance(
    db: Session,
    case_id: int,
    action: str,
    actor: User | None,
    *,
    explicit_next_stage_id: int | None = None,
    comments: str | None = None,
    commit: bool = True,
) -> TransitionResult:
    """
    Advance a case to its next workflow stage.

    Next stage: explicit id, else the current stage's next_stage_id, else the
    next higher sort_order (type-scoped preferred over global at a tie).
    Returns outcome `no_current_stage` or `no_next_stage` without mutating
    anything when no move is possible, and `unchanged` when the case already
    sits at the target stage with the target status.
    """
    case = lock_case(db, case_id)
    log_context = build_log_context(
        user_id=actor.id if actor else None, case_id=case.id, action=action
    )

    current = case.current_stage
    if current is None:
        logger.warning("Case has no resolvable workflow stage", extra=log_context)
        _release(db, commit)
        return _result(NO_CURRENT_STAGE, case, case.status, None, None)

    next_stage = workflow_stage_service.resolve_next_stage(
        db, current, case.case_type_id, explicit_next_stage_id
    )
    if next_stage is None:
        logger.info("No further workflow stage after '%s'", current.stage_key, extra=log_context)
        _release(db, commit)
        return _result(NO_NEXT_STAGE, case, case.status, current.id, None)

    return move_to_stage(
        db, case, next_stage, action, actor, comments=comments, commit=commit
    )
