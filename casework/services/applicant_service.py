"""Applicant service - CRUD and ITS synchronization."""

import logging
from datetime import datetime, timezone
from typing import TypedDict

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casework.db.models import Applicant, Case
from casework.services.errors import ConflictError, NotFoundError, ValidationError
from casework.services.its_gateway import (
    ITS_NUMBER_RE,
    TRANSIENT_ERRORS,
    ItsGateway,
    ItsGatewayError,
    ItsNotFoundError,
    resolve_org_codes,
)

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10

APPLICANT_FIELDS = (
    "its_number",
    "first_name",
    "last_name",
    "full_name",
    "age",
    "gender",
    "phone",
    "email",
    "address",
    "city",
    "state",
    "country",
    "occupation",
    "qualification",
    "idara",
    "jamiat_id",
    "jamaat_id",
    "photo",
)

# Gateway fields copied onto the record on refresh
ITS_SYNC_FIELDS = (
    "full_name",
    "first_name",
    "last_name",
    "age",
    "gender",
    "phone",
    "email",
    "address",
    "city",
    "state",
    "country",
    "occupation",
    "qualification",
    "idara",
    "photo",
)


class BulkRefreshResult(TypedDict):
    processed: int
    updated: int
    failed: int
    errors: list[str]


def _validate_its(its_number: str | None) -> str:
    its_number = (its_number or "").strip()
    if not ITS_NUMBER_RE.match(its_number):
        raise ValidationError("ITS number must be exactly 8 digits")
    return its_number


def _its_taken(db: Session, its_number: str, exclude_id: int | None = None) -> bool:
    query = db.query(Applicant).filter(Applicant.its_number == its_number)
    if exclude_id is not None:
        query = query.filter(Applicant.id != exclude_id)
    return db.query(query.exists()).scalar()


def get_applicant(db: Session, applicant_id: int) -> Applicant:
    applicant = db.get(Applicant, applicant_id)
    if not applicant:
        raise NotFoundError("Applicant not found")
    return applicant


def get_by_its(db: Session, its_number: str) -> Applicant | None:
    return db.query(Applicant).filter(Applicant.its_number == its_number).first()


def list_applicants(
    db: Session,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Applicant], int]:
    """Search on ITS number, names and phone. Returns (items, total)."""
    query = db.query(Applicant)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Applicant.its_number.ilike(term),
                Applicant.first_name.ilike(term),
                Applicant.last_name.ilike(term),
                Applicant.full_name.ilike(term),
                Applicant.phone.ilike(term),
            )
        )
    total = query.count()
    items = (
        query.order_by(Applicant.created_at.desc(), Applicant.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def build_applicant(data: dict) -> Applicant:
    """Validate and construct (unsaved). Name parts are required."""
    its_number = _validate_its(data.get("its_number"))
    first_name = (data.get("first_name") or "").strip()
    last_name = (data.get("last_name") or "").strip()
    if not first_name or not last_name:
        raise ValidationError("First name and last name are required")

    values = {field: data.get(field) for field in APPLICANT_FIELDS if field in data}
    values.update(its_number=its_number, first_name=first_name, last_name=last_name)
    if not values.get("full_name"):
        values["full_name"] = f"{first_name} {last_name}"
    return Applicant(**values)


def create_applicant(db: Session, data: dict, commit: bool = True) -> Applicant:
    applicant = build_applicant(data)
    if _its_taken(db, applicant.its_number):
        raise ConflictError("Applicant with this ITS number already exists")
    db.add(applicant)
    if commit:
        db.commit()
        db.refresh(applicant)
    else:
        db.flush()
    return applicant


def update_applicant(db: Session, applicant: Applicant, changes: dict) -> Applicant:
    if "its_number" in changes:
        its_number = _validate_its(changes["its_number"])
        if _its_taken(db, its_number, exclude_id=applicant.id):
            raise ConflictError("Applicant with this ITS number already exists")
        changes = {**changes, "its_number": its_number}

    for field in APPLICANT_FIELDS:
        if field in changes:
            setattr(applicant, field, changes[field])
    db.commit()
    db.refresh(applicant)
    return applicant


def delete_applicant(db: Session, applicant: Applicant) -> None:
    has_cases = db.query(db.query(Case).filter(Case.applicant_id == applicant.id).exists()).scalar()
    if has_cases:
        raise ConflictError("Cannot delete applicant with existing cases")
    db.delete(applicant)
    db.commit()


# =============================================================================
# ITS Sync
# =============================================================================

def refresh_from_its(db: Session, gateway: ItsGateway, applicant: Applicant) -> Applicant:
    """
    Merge ITS data into an applicant.

    Not found: marks its_lookup_failed so bulk refresh skips the record.
    Transient failures propagate without marking.
    """
    try:
        data = gateway.fetch_applicant(applicant.its_number)
    except ItsNotFoundError:
        applicant.its_lookup_failed = True
        db.commit()
        raise

    for field in ITS_SYNC_FIELDS:
        value = data.get(field)
        if value not in (None, ""):
            setattr(applicant, field, value)

    jamiat_pk, jamaat_pk = resolve_org_codes(db, data.get("jamiat_id"), data.get("jamaat_id"))
    if jamiat_pk:
        applicant.jamiat_id = jamiat_pk
    if jamaat_pk:
        applicant.jamaat_id = jamaat_pk

    applicant.its_lookup_failed = False
    applicant.its_synced_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(applicant)
    return applicant


def bulk_refresh_from_its(
    db: Session,
    gateway: ItsGateway,
    applicant_ids: list[int] | None = None,
) -> BulkRefreshResult:
    """Refresh many applicants; one failure never stops the batch."""
    query = db.query(Applicant)
    if applicant_ids:
        query = query.filter(Applicant.id.in_(applicant_ids))
    else:
        query = query.filter(Applicant.its_lookup_failed.is_(False))
    applicants = query.order_by(Applicant.id).all()

    result: BulkRefreshResult = {"processed": 0, "updated": 0, "failed": 0, "errors": []}
    for applicant in applicants:
        result["processed"] += 1
        applicant_id, its_number = applicant.id, applicant.its_number
        try:
            refresh_from_its(db, gateway, applicant)
            result["updated"] += 1
        except ItsGatewayError as exc:
            result["failed"] += 1
            if len(result["errors"]) < MAX_REPORTED_ERRORS:
                result["errors"].append(f"{its_number}: {exc.message}")
            if isinstance(exc, TRANSIENT_ERRORS):
                logger.warning("Transient ITS failure for applicant %s", applicant_id)
        except SQLAlchemyError as exc:
            db.rollback()
            result["failed"] += 1
            if len(result["errors"]) < MAX_REPORTED_ERRORS:
                result["errors"].append(f"{its_number}: Database error while saving")
            logger.error("ITS refresh could not be saved for applicant %s: %s", applicant_id, exc)

    logger.info(
        "ITS bulk refresh finished: %s processed, %s updated, %s failed",
        result["processed"],
        result["updated"],
        result["failed"],
    )
    return result
