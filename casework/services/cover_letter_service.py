"""Cover letter form service.

One form per case. Saving upserts the JSON sections; submitting marks the form
complete and, when the case sits on the cover letter stage, advances it.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from casework.db.enums import Role as RoleName
from casework.db.models import Case, CoverLetterForm, User
from casework.services import workflow_service
from casework.services.errors import ConflictError, NotFoundError, ValidationError
from casework.services.workflow_service import TransitionResult

FORM_SECTIONS = (
    "applicant_details",
    "counsellor_details",
    "financial_overview",
    "financial_assistance",
    "projected_income",
)
FORM_TEXT_FIELDS = (
    "proposed_upliftment_plan",
    "non_financial_assistance",
    "case_management_comments",
)

COVER_LETTER_STAGE_KEY = "cover_letter"


def _is_super_admin(user: User) -> bool:
    return user.role == RoleName.SUPER_ADMIN.value


def get_form(db: Session, case_id: int) -> CoverLetterForm | None:
    return db.query(CoverLetterForm).filter(CoverLetterForm.case_id == case_id).first()


def get_form_by_id(db: Session, form_id: int) -> CoverLetterForm:
    form = db.get(CoverLetterForm, form_id)
    if not form:
        raise NotFoundError("Cover letter form not found")
    return form


def save_form(db: Session, case: Case, data: dict, actor: User) -> CoverLetterForm:
    """Create or update the case's form. Approved forms are read-only except for super_admin."""
    form = get_form(db, case.id)
    if form is None:
        form = CoverLetterForm(case_id=case.id)
        db.add(form)
    elif form.is_approved and not _is_super_admin(actor):
        raise ValidationError("This cover letter has been approved and cannot be edited")

    for field in FORM_SECTIONS:
        if field in data:
            value = data[field]
            if value is not None and not isinstance(value, dict):
                raise ValidationError(f"{field} must be an object")
            setattr(form, field, value)
    for field in FORM_TEXT_FIELDS:
        if field in data:
            setattr(form, field, data[field])

    db.commit()
    db.refresh(form)
    return form


def submit_form(db: Session, form_id: int, actor: User) -> tuple[CoverLetterForm, TransitionResult | None]:
    """
    Mark the form complete. On the cover letter stage the case advances in
    the same transaction (action cover_letter_submitted).
    """
    form = get_form_by_id(db, form_id)
    if form.is_approved and not _is_super_admin(actor):
        raise ValidationError("This cover letter has been approved and cannot be resubmitted")

    case = workflow_service.lock_case(db, form.case_id)
    form.is_complete = True
    form.submitted_by = actor.id
    form.submitted_at = datetime.now(timezone.utc)

    result = None
    stage = case.current_stage
    if stage is not None and stage.stage_key == COVER_LETTER_STAGE_KEY:
        result = workflow_service.advance(
            db, case.id, "cover_letter_submitted", actor,
            comments="Cover letter form submitted",
            commit=False,
        )
        if result["outcome"] == workflow_service.NO_NEXT_STAGE:
            db.rollback()
            raise ConflictError("No further workflow stage")

    workflow_service.finish(db, commit=True)
    db.refresh(form)
    return form, result
