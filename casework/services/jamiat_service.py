"""Jamiat/Jamaat masters: CRUD plus CSV import, export and template."""

import csv
import io
import logging
import re
from typing import Iterable, Sequence, TypedDict

from sqlalchemy.orm import Session, selectinload

from casework.db.models import Applicant, Case, Jamaat, Jamiat
from casework.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("Jamiat ID", "Jamiat", "Jamaat ID", "Jamaat")
CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@")
CODE_RE = re.compile(r"^[A-Za-z0-9_.-]{1,50}$")
MAX_REPORTED_ERRORS = 10


class ImportResult(TypedDict):
    total_rows: int
    jamiats_created: int
    jamiats_updated: int
    jamaats_created: int
    jamaats_updated: int
    error_count: int
    errors: list[str]


def _clean_code(value: str | None, label: str) -> str:
    code = (value or "").strip()
    if not CODE_RE.match(code):
        raise ValidationError(f"Invalid {label}")
    return code


# =============================================================================
# Jamiat
# =============================================================================

def list_jamiats(db: Session, include_inactive: bool = False) -> list[Jamiat]:
    query = db.query(Jamiat)
    if not include_inactive:
        query = query.filter(Jamiat.is_active.is_(True))
    return query.order_by(Jamiat.name).all()


def get_jamiat(db: Session, jamiat_pk: int) -> Jamiat:
    jamiat = db.get(Jamiat, jamiat_pk)
    if not jamiat:
        raise NotFoundError("Jamiat not found")
    return jamiat


def create_jamiat(db: Session, code: str, name: str, is_active: bool = True) -> Jamiat:
    code = _clean_code(code, "Jamiat ID")
    if not (name or "").strip():
        raise ValidationError("Jamiat name is required")
    if db.query(Jamiat).filter(Jamiat.jamiat_id == code).first():
        raise ConflictError("Jamiat ID already exists")
    jamiat = Jamiat(jamiat_id=code, name=name.strip(), is_active=is_active)
    db.add(jamiat)
    db.commit()
    db.refresh(jamiat)
    return jamiat


def update_jamiat(db: Session, jamiat: Jamiat, changes: dict) -> Jamiat:
    if changes.get("jamiat_id") is not None:
        code = _clean_code(changes["jamiat_id"], "Jamiat ID")
        taken = db.query(Jamiat).filter(Jamiat.jamiat_id == code, Jamiat.id != jamiat.id).first()
        if taken:
            raise ConflictError("Jamiat ID already exists")
        jamiat.jamiat_id = code
    if changes.get("name") is not None:
        jamiat.name = changes["name"].strip()
    if changes.get("is_active") is not None:
        jamiat.is_active = changes["is_active"]
    db.commit()
    db.refresh(jamiat)
    return jamiat


def delete_jamiat(db: Session, jamiat: Jamiat) -> None:
    in_use = (
        db.query(Case).filter(Case.jamiat_id == jamiat.id).first()
        or db.query(Applicant).filter(Applicant.jamiat_id == jamiat.id).first()
    )
    if in_use:
        raise ConflictError("Jamiat is referenced by cases or applicants")
    db.delete(jamiat)
    db.commit()


# =============================================================================
# Jamaat
# =============================================================================

def list_jamaats(db: Session, jamiat_pk: int | None = None, include_inactive: bool = False) -> list[Jamaat]:
    query = db.query(Jamaat)
    if jamiat_pk is not None:
        query = query.filter(Jamaat.jamiat_id == jamiat_pk)
    if not include_inactive:
        query = query.filter(Jamaat.is_active.is_(True))
    return query.order_by(Jamaat.name).all()


def get_jamaat(db: Session, jamaat_pk: int) -> Jamaat:
    jamaat = db.get(Jamaat, jamaat_pk)
    if not jamaat:
        raise NotFoundError("Jamaat not found")
    return jamaat


def _jamaat_code_taken(db: Session, jamiat_pk: int, code: str, exclude_id: int | None = None) -> bool:
    query = db.query(Jamaat).filter(Jamaat.jamiat_id == jamiat_pk, Jamaat.jamaat_id == code)
    if exclude_id is not None:
        query = query.filter(Jamaat.id != exclude_id)
    return query.first() is not None


def create_jamaat(db: Session, jamiat_pk: int, code: str, name: str, is_active: bool = True) -> Jamaat:
    get_jamiat(db, jamiat_pk)
    code = _clean_code(code, "Jamaat ID")
    if not (name or "").strip():
        raise ValidationError("Jamaat name is required")
    if _jamaat_code_taken(db, jamiat_pk, code):
        raise ConflictError("Jamaat ID already exists in this jamiat")
    jamaat = Jamaat(jamiat_id=jamiat_pk, jamaat_id=code, name=name.strip(), is_active=is_active)
    db.add(jamaat)
    db.commit()
    db.refresh(jamaat)
    return jamaat


def update_jamaat(db: Session, jamaat: Jamaat, changes: dict) -> Jamaat:
    jamiat_pk = changes.get("jamiat_id") or jamaat.jamiat_id
    if jamiat_pk != jamaat.jamiat_id:
        get_jamiat(db, jamiat_pk)
    code = jamaat.jamaat_id
    if changes.get("jamaat_id") is not None:
        code = _clean_code(changes["jamaat_id"], "Jamaat ID")
    if _jamaat_code_taken(db, jamiat_pk, code, exclude_id=jamaat.id):
        raise ConflictError("Jamaat ID already exists in this jamiat")
    jamaat.jamiat_id = jamiat_pk
    jamaat.jamaat_id = code
    if changes.get("name") is not None:
        jamaat.name = changes["name"].strip()
    if changes.get("is_active") is not None:
        jamaat.is_active = changes["is_active"]
    db.commit()
    db.refresh(jamaat)
    return jamaat


def delete_jamaat(db: Session, jamaat: Jamaat) -> None:
    in_use = (
        db.query(Case).filter(Case.jamaat_id == jamaat.id).first()
        or db.query(Applicant).filter(Applicant.jamaat_id == jamaat.id).first()
    )
    if in_use:
        raise ConflictError("Jamaat is referenced by cases or applicants")
    db.delete(jamaat)
    db.commit()


# =============================================================================
# CSV
# =============================================================================

def _csv_safe(value: str) -> str:
    if value and value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


def _write_csv(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_safe(value or "") for value in row])
    return output.getvalue()


def template_csv() -> str:
    return _write_csv(CSV_COLUMNS, [])


def export_csv(db: Session) -> str:
    """All jamiat/jamaat pairs ordered by jamiat code, then jamaat code."""
    jamiats = (
        db.query(Jamiat)
        .options(selectinload(Jamiat.jamaats))
        .order_by(Jamiat.jamiat_id)
        .all()
    )
    rows: list[tuple[str, str, str, str]] = []
    for jamiat in jamiats:
        jamaats = sorted(jamiat.jamaats, key=lambda j: j.jamaat_id)
        if not jamaats:
            rows.append((jamiat.jamiat_id, jamiat.name, "", ""))
        for jamaat in jamaats:
            rows.append((jamiat.jamiat_id, jamiat.name, jamaat.jamaat_id, jamaat.name))
    return _write_csv(CSV_COLUMNS, rows)


def import_csv(db: Session, text: str) -> ImportResult:
    """
    Upsert jamiat/jamaat rows from CSV text.

    Invalid rows are skipped and reported (first 10 messages); the valid rows
    commit together.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ValidationError("CSV has no headers")
    headers = [h.strip() for h in reader.fieldnames]
    missing = [col for col in CSV_COLUMNS if col not in headers]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    reader.fieldnames = headers

    result: ImportResult = {
        "total_rows": 0,
        "jamiats_created": 0,
        "jamiats_updated": 0,
        "jamaats_created": 0,
        "jamaats_updated": 0,
        "error_count": 0,
        "errors": [],
    }

    def record_error(message: str) -> None:
        result["error_count"] += 1
        if len(result["errors"]) < MAX_REPORTED_ERRORS:
            result["errors"].append(message)

    jamiats = {j.jamiat_id: j for j in db.query(Jamiat).all()}
    jamaats = {(j.jamiat_id, j.jamaat_id): j for j in db.query(Jamaat).all()}
    touched_jamiats: set[str] = set()

    for line_number, row in enumerate(reader, start=2):
        result["total_rows"] += 1
        values = {col: (row.get(col) or "").strip() for col in CSV_COLUMNS}
        jamiat_code, jamiat_name, jamaat_code, jamaat_name = (values[c] for c in CSV_COLUMNS)

        if not all((jamiat_code, jamiat_name, jamaat_code, jamaat_name)):
            record_error(f"Row {line_number}: Missing required data")
            continue
        if not CODE_RE.match(jamiat_code) or not CODE_RE.match(jamaat_code):
            record_error(f"Row {line_number}: Invalid Jamiat ID or Jamaat ID")
            continue

        jamiat = jamiats.get(jamiat_code)
        if jamiat is None:
            jamiat = Jamiat(jamiat_id=jamiat_code, name=jamiat_name, is_active=True)
            db.add(jamiat)
            db.flush()
            jamiats[jamiat_code] = jamiat
            touched_jamiats.add(jamiat_code)
            result["jamiats_created"] += 1
        elif jamiat.name != jamiat_name and jamiat_code not in touched_jamiats:
            jamiat.name = jamiat_name
            touched_jamiats.add(jamiat_code)
            result["jamiats_updated"] += 1

        jamaat = jamaats.get((jamiat.id, jamaat_code))
        if jamaat is None:
            jamaat = Jamaat(jamiat_id=jamiat.id, jamaat_id=jamaat_code, name=jamaat_name, is_active=True)
            db.add(jamaat)
            jamaats[(jamiat.id, jamaat_code)] = jamaat
            result["jamaats_created"] += 1
        elif jamaat.name != jamaat_name:
            jamaat.name = jamaat_name
            result["jamaats_updated"] += 1

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Jamiat import: %s rows, %s errors", result["total_rows"], result["error_count"]
    )
    return result
