"""Case types master router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_current_user, get_db, require_permission
from casework.db.models import User
from casework.schemas.master import CaseTypeCreate, CaseTypeRead, CaseTypeUpdate
from casework.services import master_service

router = APIRouter()


@router.get("", response_model=list[CaseTypeRead])
def list_case_types(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return master_service.list_case_types(db, include_inactive=include_inactive)


@router.post("", response_model=CaseTypeRead, status_code=201)
def create_case_type(
    data: CaseTypeCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.create")),
):
    return master_service.create_case_type(db, data.model_dump())


@router.get("/{case_type_id}", response_model=CaseTypeRead)
def get_case_type(
    case_type_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return master_service.get_case_type(db, case_type_id)


@router.put("/{case_type_id}", response_model=CaseTypeRead)
def update_case_type(
    case_type_id: int,
    data: CaseTypeUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    case_type = master_service.get_case_type(db, case_type_id)
    return master_service.update_case_type(db, case_type, data.model_dump(exclude_unset=True))


@router.delete("/{case_type_id}", response_model=CaseTypeRead)
def deactivate_case_type(
    case_type_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.delete")),
):
    """Soft-delete; existing cases keep their type."""
    return master_service.deactivate_case_type(db, master_service.get_case_type(db, case_type_id))
