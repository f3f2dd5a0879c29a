"""Jamaat master router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User
from casework.schemas.organization import JamaatCreate, JamaatRead, JamaatUpdate
from casework.services import jamiat_service

router = APIRouter()


@router.get("", response_model=list[JamaatRead])
def list_jamaats(
    jamiat_id: int | None = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    return jamiat_service.list_jamaats(db, jamiat_pk=jamiat_id, include_inactive=include_inactive)


@router.post("", response_model=JamaatRead, status_code=201)
def create_jamaat(
    data: JamaatCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.create")),
):
    return jamiat_service.create_jamaat(db, data.jamiat_id, data.jamaat_id, data.name, data.is_active)


@router.get("/{jamaat_pk}", response_model=JamaatRead)
def get_jamaat(
    jamaat_pk: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    return jamiat_service.get_jamaat(db, jamaat_pk)


@router.put("/{jamaat_pk}", response_model=JamaatRead)
def update_jamaat(
    jamaat_pk: int,
    data: JamaatUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    jamaat = jamiat_service.get_jamaat(db, jamaat_pk)
    return jamiat_service.update_jamaat(db, jamaat, data.model_dump(exclude_unset=True))


@router.delete("/{jamaat_pk}", status_code=204)
def delete_jamaat(
    jamaat_pk: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.delete")),
):
    jamiat_service.delete_jamaat(db, jamiat_service.get_jamaat(db, jamaat_pk))
