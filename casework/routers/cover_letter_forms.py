"""Cover letter forms router."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User
from casework.schemas.cover_letter import CoverLetterRead, CoverLetterSave, CoverLetterSubmitResponse
from casework.services import case_service, cover_letter_service

router = APIRouter()


@router.get("/case/{case_id}", response_model=CoverLetterRead)
def get_form_for_case(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cover_letters.read")),
):
    case = case_service.get_case(db, case_id)
    case_service.authorize_case_access(db, user, case)
    form = cover_letter_service.get_form(db, case.id)
    if form is None:
        raise HTTPException(status_code=404, detail="Cover letter form not found")
    return form


@router.post("/save", response_model=CoverLetterRead)
def save_form(
    data: CoverLetterSave,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cover_letters.update")),
):
    """Create or update the case's form. Only the fields sent are touched."""
    case = case_service.get_case(db, data.case_id)
    case_service.authorize_case_access(db, user, case)
    changes = data.model_dump(exclude_unset=True)
    changes.pop("case_id", None)
    return cover_letter_service.save_form(db, case, changes, user)


@router.put("/{form_id}/submit", response_model=CoverLetterSubmitResponse)
def submit_form(
    form_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cover_letters.submit")),
):
    form, result = cover_letter_service.submit_form(db, form_id, user)
    if result is None:
        return CoverLetterSubmitResponse(message="Cover letter submitted", form=form)
    return CoverLetterSubmitResponse(
        message="Cover letter submitted and case advanced",
        form=form,
        newStatus=result["new_status"],
        nextStage=result["next_stage"],
    )
