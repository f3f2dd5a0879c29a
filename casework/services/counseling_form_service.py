"""Counseling form service.

One form per case, saved one section at a time. Completing the form requires
every section and moves the case onto the welfare review stage in the same
transaction as the form update.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from casework.db.enums import CaseStatus, CommentType, Role
from casework.db.models import Case, CounselingForm, User
from casework.services import (
    case_service,
    permission_service,
    workflow_service,
    workflow_stage_service,
)
from casework.services.errors import ForbiddenError, NotFoundError, ValidationError
from casework.services.workflow_service import TransitionResult

logger = logging.getLogger(__name__)

FORM_SECTIONS = (
    "personal_details",
    "family_details",
    "assessment",
    "financial_assistance",
    "economic_growth",
    "declaration",
    "attachments",
)

WELFARE_STAGE_PATTERN = "welfare"
# Roles that may complete a form without being assigned to the case
COMPLETE_ANY_ROLES = frozenset({Role.SUPER_ADMIN.value, Role.ADMIN.value})
COMPLETION_COMMENT = "Case completed and submitted to welfare department"


def get_form(db: Session, case_id: int) -> CounselingForm | None:
    return db.query(CounselingForm).filter(CounselingForm.case_id == case_id).first()


def get_form_by_id(db: Session, form_id: int) -> CounselingForm:
    form = db.get(CounselingForm, form_id)
    if not form:
        raise NotFoundError("Counseling form not found")
    return form


def get_or_create_form(db: Session, case: Case) -> CounselingForm:
    form = get_form(db, case.id)
    if form is None:
        form = CounselingForm(case_id=case.id)
        db.add(form)
        db.commit()
        db.refresh(form)
    return form


def missing_sections(form: CounselingForm) -> list[str]:
    return [section for section in FORM_SECTIONS if getattr(form, section) is None]


def _ensure_can_complete(db: Session, actor: User, case: Case) -> None:
    if actor.id in (case.assigned_user_id, case.assigned_counselor_id):
        return
    if set(permission_service.get_user_role_names(db, actor)) & COMPLETE_ANY_ROLES:
        return
    raise ForbiddenError("Only the assigned counselor can complete this form")


def update_section(
    db: Session,
    form_id: int,
    section: str,
    data: dict,
    actor: User,
) -> CounselingForm:
    """
    Replace one section. A completed form stays locked unless the case was
    sent back as welfare_rejected. The first saved section on an assigned
    case puts it in counseling.
    """
    if section not in FORM_SECTIONS:
        raise ValidationError("Invalid section")
    if not isinstance(data, dict):
        raise ValidationError(f"{section} must be an object")

    form = get_form_by_id(db, form_id)
    case = workflow_service.lock_case(db, form.case_id)
    if form.is_complete and case.status != CaseStatus.WELFARE_REJECTED.value:
        raise ForbiddenError(
            "This form has been submitted and cannot be edited. "
            "It can only be edited if it is rejected for rework."
        )

    setattr(form, section, data)
    if case.status == CaseStatus.ASSIGNED.value:
        workflow_service.set_status(
            db, case, CaseStatus.IN_COUNSELING.value, "counseling_started", actor,
            comments="Counseling form started", commit=False,
        )
    workflow_service.finish(db, commit=True)
    db.refresh(form)
    return form


def complete_form(db: Session, form_id: int, actor: User) -> tuple[CounselingForm, TransitionResult]:
    """
    Mark the form complete and move the case to welfare review with the
    stage's first associated status. A case already there is left as is.
    """
    form = get_form_by_id(db, form_id)
    case = workflow_service.lock_case(db, form.case_id)
    _ensure_can_complete(db, actor, case)
    missing = missing_sections(form)
    if missing:
        raise ValidationError(f"Cannot complete form. Missing sections: {', '.join(missing)}")

    welfare_stage = workflow_stage_service.find_stage_by_key_pattern(
        db, WELFARE_STAGE_PATTERN, case.case_type_id
    )
    if welfare_stage is None:
        raise ValidationError("Welfare stage not found. Please configure workflow stages.")

    form.is_complete = True
    form.completed_by = actor.id
    form.completed_at = datetime.now(timezone.utc)

    result = workflow_service.move_to_stage(
        db, case, welfare_stage, "counseling_form_completed", actor,
        comments=COMPLETION_COMMENT, commit=False,
    )
    case_service.add_comment(
        db, case, actor,
        f"{COMPLETION_COMMENT} for review. Case: {case.case_number}",
        CommentType.APPROVAL, commit=False,
    )
    workflow_service.finish(db, commit=True)
    db.refresh(form)

    logger.info(
        "Counseling form completed",
        extra={"case_id": case.id, "user_id": actor.id, "outcome": result["outcome"]},
    )
    return form, result
