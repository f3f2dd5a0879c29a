"""Executive levels master router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_current_user, get_db, require_permission
from casework.db.models import User
from casework.schemas.master import (
    ExecutiveLevelCreate,
    ExecutiveLevelRead,
    ExecutiveLevelUpdate,
    ReorderRequest,
)
from casework.services import master_service

router = APIRouter()


@router.get("", response_model=list[ExecutiveLevelRead])
def list_levels(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return master_service.list_levels(db, include_inactive=include_inactive)


@router.post("", response_model=ExecutiveLevelRead, status_code=201)
def create_level(
    data: ExecutiveLevelCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.create")),
):
    return master_service.create_level(db, data.model_dump())


@router.put("/reorder", response_model=list[ExecutiveLevelRead])
def reorder_levels(
    data: ReorderRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    return master_service.reorder_levels(db, data.ordered_ids)


@router.get("/{level_id}", response_model=ExecutiveLevelRead)
def get_level(
    level_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return master_service.get_level(db, level_id)


@router.put("/{level_id}", response_model=ExecutiveLevelRead)
def update_level(
    level_id: int,
    data: ExecutiveLevelUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    level = master_service.get_level(db, level_id)
    return master_service.update_level(db, level, data.model_dump(exclude_unset=True))


@router.delete("/{level_id}", status_code=204)
def delete_level(
    level_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.delete")),
):
    """Refused with 409 while users or cases sit at this level."""
    master_service.delete_level(db, master_service.get_level(db, level_id))
