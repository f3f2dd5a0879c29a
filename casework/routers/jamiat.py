"""Jamiat master router, including the jamiat/jamaat CSV import and export."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User
from casework.schemas.organization import (
    ImportResultRead,
    JamaatRead,
    JamiatCreate,
    JamiatRead,
    JamiatUpdate,
)
from casework.services import jamiat_service
from casework.services.errors import ValidationError

router = APIRouter()

MAX_IMPORT_BYTES = 2 * 1024 * 1024


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# Import / Export
# =============================================================================

@router.get("/template/download")
def download_template(user: User = Depends(require_permission("master.read"))):
    return _csv_response(jamiat_service.template_csv(), "jamiat_jamaat_template.csv")


@router.get("/export")
def export_all(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    return _csv_response(jamiat_service.export_csv(db), "jamiat_jamaat_export.csv")


@router.post("/import", response_model=ImportResultRead)
async def import_file(
    file: Annotated[UploadFile, File()],
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.create")),
):
    """Upsert jamiats and jamaats from a CSV shaped like the template."""
    if not (file.filename or "").lower().endswith(".csv"):
        raise ValidationError("Only .csv files are accepted")
    content = await file.read()
    if len(content) > MAX_IMPORT_BYTES:
        raise ValidationError("Import file exceeds 2 MB limit")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("Import file must be UTF-8 encoded") from exc
    return jamiat_service.import_csv(db, text)


# =============================================================================
# CRUD
# =============================================================================

@router.get("", response_model=list[JamiatRead])
def list_jamiats(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    return jamiat_service.list_jamiats(db, include_inactive=include_inactive)


@router.post("", response_model=JamiatRead, status_code=201)
def create_jamiat(
    data: JamiatCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.create")),
):
    return jamiat_service.create_jamiat(db, data.jamiat_id, data.name, data.is_active)


@router.get("/{jamiat_pk}", response_model=JamiatRead)
def get_jamiat(
    jamiat_pk: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    return jamiat_service.get_jamiat(db, jamiat_pk)


@router.get("/{jamiat_pk}/jamaats", response_model=list[JamaatRead])
def list_jamiat_jamaats(
    jamiat_pk: int,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    jamiat_service.get_jamiat(db, jamiat_pk)
    return jamiat_service.list_jamaats(db, jamiat_pk=jamiat_pk, include_inactive=include_inactive)


@router.put("/{jamiat_pk}", response_model=JamiatRead)
def update_jamiat(
    jamiat_pk: int,
    data: JamiatUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    jamiat = jamiat_service.get_jamiat(db, jamiat_pk)
    return jamiat_service.update_jamiat(db, jamiat, data.model_dump(exclude_unset=True))


@router.delete("/{jamiat_pk}", status_code=204)
def delete_jamiat(
    jamiat_pk: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.delete")),
):
    """Hard delete. Refused with 409 while cases or applicants reference it."""
    jamiat_service.delete_jamiat(db, jamiat_service.get_jamiat(db, jamiat_pk))
