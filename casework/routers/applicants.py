"""Applicants router - applicant records and ITS lookups."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from casework.core.deps import get_db, get_its_gateway, require_permission
from casework.db.models import User
from casework.schemas.applicant import (
    ApplicantCreate,
    ApplicantListResponse,
    ApplicantRead,
    ApplicantUpdate,
    BulkRefreshRequest,
    BulkRefreshResponse,
    ItsApplicantRead,
)
from casework.services import applicant_service
from casework.services.its_gateway import ItsGateway

router = APIRouter()


@router.get("", response_model=ApplicantListResponse)
def list_applicants(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.read")),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    items, total = applicant_service.list_applicants(db, search=search, page=page, limit=limit)
    return ApplicantListResponse(
        items=[ApplicantRead.model_validate(a) for a in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/fetch-from-api/{its_number}", response_model=ItsApplicantRead)
def fetch_from_api(
    its_number: str,
    user: User = Depends(require_permission("applicants.fetch")),
    gateway: ItsGateway = Depends(get_its_gateway),
):
    """
    Look up an ITS number without saving anything.

    Upstream failures map to 404 (unknown number), 408 (timeout),
    503 (unreachable) or 400 (any other upstream error).
    """
    return gateway.fetch_applicant(its_number)


@router.post("/refresh-from-its", response_model=BulkRefreshResponse)
def bulk_refresh(
    data: BulkRefreshRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.update")),
    gateway: ItsGateway = Depends(get_its_gateway),
):
    """Refresh many applicants from ITS. Numbers previously not found are skipped."""
    return applicant_service.bulk_refresh_from_its(db, gateway, data.applicant_ids)


@router.get("/{applicant_id}", response_model=ApplicantRead)
def get_applicant(
    applicant_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.read")),
):
    return applicant_service.get_applicant(db, applicant_id)


@router.post("", response_model=ApplicantRead, status_code=201)
def create_applicant(
    data: ApplicantCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.create")),
):
    return applicant_service.create_applicant(db, data.model_dump(mode="json"))


@router.put("/{applicant_id}", response_model=ApplicantRead)
def update_applicant(
    applicant_id: int,
    data: ApplicantUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.update")),
):
    applicant = applicant_service.get_applicant(db, applicant_id)
    return applicant_service.update_applicant(
        db, applicant, data.model_dump(mode="json", exclude_unset=True)
    )


@router.post("/{applicant_id}/refresh-from-its", response_model=ApplicantRead)
def refresh_applicant(
    applicant_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.update")),
    gateway: ItsGateway = Depends(get_its_gateway),
):
    applicant = applicant_service.get_applicant(db, applicant_id)
    return applicant_service.refresh_from_its(db, gateway, applicant)


@router.delete("/{applicant_id}", status_code=204)
def delete_applicant(
    applicant_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("applicants.delete")),
):
    """Delete an applicant. Refused with 409 while cases reference it."""
    applicant_service.delete_applicant(db, applicant_service.get_applicant(db, applicant_id))
