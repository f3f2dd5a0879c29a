"""Stage entry points: welfare review, executive approval, rework and generic approve/reject.

Each entry point validates its preconditions, then hands the move to
workflow_service with its own action label. Comments and form flags written
alongside a transition share its transaction.
"""

import logging
from datetime import datetime, timezone
from typing import TypedDict

from sqlalchemy.orm import Session

from casework.db.enums import CaseStatus, CommentType, NotificationType, Role as RoleName
from casework.db.models import Case, CoverLetterForm, User, WorkflowStage
from casework.services import (
    case_service,
    checklist_service,
    master_service,
    notification_service,
    workflow_service,
    workflow_stage_service,
)
from casework.services.errors import ConflictError, ForbiddenError, ValidationError
from casework.services.workflow_service import StageRef, TransitionResult

logger = logging.getLogger(__name__)


class ActionResult(TypedDict):
    message: str
    caseId: int
    newStatus: str
    nextStage: StageRef | None


def _response(message: str, result: TransitionResult) -> ActionResult:
    return {
        "message": message,
        "caseId": result["case_id"],
        "newStatus": result["new_status"],
        "nextStage": result["next_stage"],
    }


def _raise_for_outcome(db: Session, result: TransitionResult) -> None:
    """Surface engine outcomes that moved nothing; discard pending writes."""
    if result["outcome"] == workflow_service.NO_NEXT_STAGE:
        db.rollback()
        raise ConflictError("No further workflow stage")
    if result["outcome"] == workflow_service.NO_CURRENT_STAGE:
        db.rollback()
        raise ValidationError("Case has no current workflow stage")


def _require_comments(comments: str | None, message: str) -> str:
    if not comments or not comments.strip():
        raise ValidationError(message)
    return comments.strip()


def _stage_by_key(db: Session, case: Case, pattern: str, label: str) -> WorkflowStage:
    stage = workflow_stage_service.find_stage_by_key_pattern(db, pattern, case.case_type_id)
    if not stage:
        raise ValidationError(f"{label} stage not found. Please configure workflow stages.")
    return stage


def _rework_target(db: Session, case: Case) -> WorkflowStage:
    """Assignment stage, else the first stage of the catalog."""
    stage = workflow_stage_service.find_stage_by_key_pattern(db, "assign", case.case_type_id)
    stage = stage or workflow_stage_service.first_stage(db, case.case_type_id)
    if not stage:
        raise ValidationError("No workflow stages configured")
    return stage


def _notify_case_owners(
    db: Session, case: Case, type: NotificationType, title: str, message: str
) -> None:
    owners = [uid for uid in (case.assigned_user_id, case.assigned_counselor_id) if uid]
    if owners:
        notification_service.notify_users(db, owners, case, type, title, message)


# =============================================================================
# Welfare Review
# =============================================================================

def welfare_approve(db: Session, case_id: int, actor: User, comments: str | None = None) -> ActionResult:
    """Approve at welfare review once the checklist is submitted and complete."""
    case = workflow_service.lock_case(db, case_id)
    if case.status != CaseStatus.SUBMITTED_TO_WELFARE.value:
        raise ValidationError("Case must be submitted to welfare department before approval")

    checklist = checklist_service.get_completion_status(db, case.id)
    if checklist["total"] > 0 and checklist["filled"] == 0:
        raise ValidationError("Submit the checklist and then click on approve button")
    if checklist["filled"] < checklist["total"]:
        raise ValidationError(
            "Checklist incomplete. Please complete all checklist items before approving. "
            f"({checklist['filled']}/{checklist['total']} completed)"
        )

    note = comments or "Case approved by welfare department"
    result = workflow_service.advance(
        db, case.id, "welfare_approved", actor, comments=note, commit=False
    )
    _raise_for_outcome(db, result)

    form = db.query(CoverLetterForm).filter(CoverLetterForm.case_id == case.id).first()
    if form:
        form.is_approved = True
        form.approved_by = actor.id
        form.approved_at = datetime.now(timezone.utc)
    case_service.add_comment(db, case, actor, note, CommentType.APPROVAL, commit=False)
    workflow_service.finish(db, commit=True)

    return _response("Case approved successfully by welfare department", result)


def welfare_reject(db: Session, case_id: int, actor: User, comments: str | None = None) -> ActionResult:
    """Send back for rework. Status becomes welfare_rejected on the current stage."""
    note = _require_comments(comments, "Comments are required when sending a case for rework")
    case = workflow_service.lock_case(db, case_id)
    if case.status != CaseStatus.SUBMITTED_TO_WELFARE.value:
        raise ValidationError("Case must be submitted to welfare department before rework")

    result = workflow_service.set_status(
        db, case, CaseStatus.WELFARE_REJECTED.value, "welfare_rejected", actor,
        comments=note, commit=False,
    )
    case_service.add_comment(db, case, actor, note, CommentType.REWORK, commit=False)
    _notify_case_owners(
        db, case, NotificationType.REWORK,
        f"Case {case.case_number} sent for rework",
        "Welfare department requested rework on this case.",
    )
    workflow_service.finish(db, commit=True)

    return _response("Case sent back for rework", result)


def welfare_forward_rework(
    db: Session, case_id: int, actor: User, comments: str | None = None
) -> ActionResult:
    """Forward an executive rework request back to the assignment stage."""
    case = workflow_service.lock_case(db, case_id)
    if case.status != CaseStatus.WELFARE_PROCESSING_REWORK.value:
        raise ValidationError("Case must be in welfare processing rework status")

    target = _rework_target(db, case)
    note = comments or "Rework forwarded by welfare department"
    result = workflow_service.move_to_stage(
        db, case, target, "welfare_forwarded_to_dcm", actor,
        status=CaseStatus.WELFARE_REJECTED.value,
        comments=note,
        allow_regression=True,
        commit=False,
    )
    case_service.add_comment(db, case, actor, note, CommentType.REWORK, commit=False)
    _notify_case_owners(
        db, case, NotificationType.REWORK,
        f"Case {case.case_number} returned for rework",
        "Executive rework was forwarded by the welfare department.",
    )
    workflow_service.finish(db, commit=True)

    return _response("Rework forwarded successfully", result)


def resubmit_welfare(db: Session, case_id: int, actor: User, comments: str | None = None) -> ActionResult:
    case = workflow_service.lock_case(db, case_id)
    if case.status != CaseStatus.WELFARE_REJECTED.value:
        raise ValidationError("Only cases sent back for rework can be resubmitted to welfare")

    welfare_stage = _stage_by_key(db, case, "welfare", "Welfare")
    result = workflow_service.move_to_stage(
        db, case, welfare_stage, "resubmitted_to_welfare", actor,
        status=CaseStatus.SUBMITTED_TO_WELFARE.value,
        comments=comments or "Case resubmitted to welfare department",
        allow_regression=True,
    )
    return _response("Case resubmitted to welfare department", result)


# =============================================================================
# Executive Approval
# =============================================================================

def executive_approve(db: Session, case_id: int, actor: User, comments: str | None = None) -> ActionResult:
    """
    Approve at the case's current executive level.

    Non-final level: status submitted_to_executive_<next level>, same stage.
    Final level (or no levels configured): advance to the next stage.
    """
    case = workflow_service.lock_case(db, case_id)
    if not workflow_service.is_executive_stage(case.current_stage):
        raise ValidationError("Case must be submitted to executive management before approval")
    if (
        actor.role == RoleName.EXECUTIVE.value
        and case.current_executive_level is not None
        and actor.executive_level != case.current_executive_level
    ):
        raise ForbiddenError("You can only approve cases assigned to your executive level")

    levels = master_service.active_levels(db)
    numbers = [level.level_number for level in levels]
    current_level = case.current_executive_level
    position = numbers.index(current_level) if current_level in numbers else 0

    if numbers and position < len(numbers) - 1:
        this_level, next_level = levels[position], levels[position + 1]
        note = comments or f"Case approved by {this_level.name} and forwarded to {next_level.name}"
        result = workflow_service.set_status(
            db, case, f"submitted_to_executive_{next_level.level_number}",
            "executive_level_approved", actor, comments=note, commit=False,
        )
        if result["outcome"] == workflow_service.APPLIED:
            case.current_executive_level = next_level.level_number
        case_service.add_comment(db, case, actor, note, CommentType.APPROVAL, commit=False)
        workflow_service.finish(db, commit=True)
        return _response(note, result)

    note = comments or "Case approved by executive management"
    result = workflow_service.advance(db, case.id, "executive_approved", actor, comments=note, commit=False)
    _raise_for_outcome(db, result)
    case_service.add_comment(db, case, actor, note, CommentType.APPROVAL, commit=False)
    workflow_service.finish(db, commit=True)
    return _response(note, result)


def executive_rework(db: Session, case_id: int, actor: User, comments: str | None = None) -> ActionResult:
    """Return the case to the welfare stage with status welfare_processing_rework."""
    note = _require_comments(comments, "Comments are required when requesting rework")
    case = workflow_service.lock_case(db, case_id)
    if not workflow_service.is_executive_stage(case.current_stage):
        raise ValidationError("Case must be at executive approval to request rework")

    welfare_stage = _stage_by_key(db, case, "welfare", "Welfare")
    result = workflow_service.move_to_stage(
        db, case, welfare_stage, "executive_rework", actor,
        status=CaseStatus.WELFARE_PROCESSING_REWORK.value,
        comments=note,
        allow_regression=True,
        commit=False,
    )
    case_service.add_comment(db, case, actor, note, CommentType.REWORK, commit=False)
    workflow_service.finish(db, commit=True)

    return _response("Case sent back to welfare department for rework", result)


# =============================================================================
# Generic Stage Action
# =============================================================================

WORKFLOW_ACTIONS = ("approve", "reject")


def workflow_action(
    db: Session,
    case_id: int,
    actor: User,
    action: str,
    comments: str | None = None,
) -> ActionResult:
    """Approve (advance) or reject (rework) at the current stage, per stage grants."""
    if action not in WORKFLOW_ACTIONS:
        raise ValidationError("Action must be 'approve' or 'reject'")

    case = workflow_service.lock_case(db, case_id)
    stage = case.current_stage
    if stage is None:
        raise ValidationError("Case has no current workflow stage")
    if not workflow_stage_service.check_stage_permission(db, actor, stage, action):
        raise ForbiddenError(f"You do not have permission to {action} at {stage.stage_name}")

    if action == "approve":
        result = workflow_service.advance(
            db, case.id, f"approved_at_{stage.stage_key}", actor, comments=comments, commit=False
        )
        _raise_for_outcome(db, result)
        if comments:
            case_service.add_comment(db, case, actor, comments, CommentType.APPROVAL, commit=False)
        workflow_service.finish(db, commit=True)
        return _response(f"Case approved at {stage.stage_name}", result)

    if stage.requires_comments_on_reject:
        _require_comments(comments, f"Comments are required to reject at {stage.stage_name}")

    target = _rework_target(db, case)
    result = workflow_service.move_to_stage(
        db, case, target, f"rejected_at_{stage.stage_key}", actor,
        comments=comments,
        allow_regression=True,
        commit=False,
    )
    if comments:
        case_service.add_comment(db, case, actor, comments, CommentType.REJECTION, commit=False)
    _notify_case_owners(
        db, case, NotificationType.REWORK,
        f"Case {case.case_number} rejected at {stage.stage_name}",
        comments or f"Returned to {target.stage_name}.",
    )
    workflow_service.finish(db, commit=True)
    return _response(f"Case rejected at {stage.stage_name}", result)
