"""Counseling forms router."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User
from casework.schemas.counseling import CounselingCompleteResponse, CounselingFormRead
from casework.services import case_service, counseling_form_service

router = APIRouter()


@router.get("/case/{case_id}", response_model=CounselingFormRead)
def get_form_for_case(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("counseling_forms.read")),
):
    """Return the case's form, creating an empty one on first access."""
    case = case_service.get_case(db, case_id)
    case_service.authorize_case_access(db, user, case)
    return counseling_form_service.get_or_create_form(db, case)


@router.put("/{form_id}/section/{section}", response_model=CounselingFormRead)
def update_section(
    form_id: int,
    section: str,
    data: Any = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("counseling_forms.update")),
):
    form = counseling_form_service.get_form_by_id(db, form_id)
    case_service.authorize_case_access(db, user, case_service.get_case(db, form.case_id))
    return counseling_form_service.update_section(db, form_id, section, data, user)


@router.put("/{form_id}/complete", response_model=CounselingCompleteResponse)
def complete_form(
    form_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("counseling_forms.complete")),
):
    form, result = counseling_form_service.complete_form(db, form_id, user)
    return CounselingCompleteResponse(
        message="Counseling form completed successfully and submitted to welfare department",
        form=form,
        newStatus=result["new_status"],
        nextStage=result["next_stage"],
    )
