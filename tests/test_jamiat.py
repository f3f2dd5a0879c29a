"""
Jamiat/Jamaat master tests.

Tests cover:
- CRUD conflicts and in-use deletes
- CSV import upsert, per-row errors and header validation
- CSV export ordering and formula-injection guard
"""

import csv
import io

import pytest

from casework.db.models import Applicant, Jamaat, Jamiat
from casework.services import jamiat_service
from casework.services.errors import ConflictError, ValidationError

HEADER = "Jamiat ID,Jamiat,Jamaat ID,Jamaat\n"


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


# =============================================================================
# CRUD
# =============================================================================


def test_duplicate_jamiat_code_conflicts(db):
    jamiat_service.create_jamiat(db, "MUM", "Mumbai")

    with pytest.raises(ConflictError):
        jamiat_service.create_jamiat(db, "MUM", "Mumbai Again")


def test_invalid_code_rejected(db):
    with pytest.raises(ValidationError):
        jamiat_service.create_jamiat(db, "bad code!", "Somewhere")


def test_jamaat_codes_unique_per_jamiat(db):
    mumbai = jamiat_service.create_jamiat(db, "MUM", "Mumbai")
    pune = jamiat_service.create_jamiat(db, "PUN", "Pune")
    jamiat_service.create_jamaat(db, mumbai.id, "001", "Saifee Park")

    # Same code under another jamiat is fine
    jamiat_service.create_jamaat(db, pune.id, "001", "Fakhri Mohalla")

    with pytest.raises(ConflictError):
        jamiat_service.create_jamaat(db, mumbai.id, "001", "Duplicate")


def test_delete_refused_while_referenced(db):
    jamiat = jamiat_service.create_jamiat(db, "MUM", "Mumbai")
    db.add(Applicant(its_number="40000001", first_name="A", last_name="B", jamiat_id=jamiat.id))
    db.commit()

    with pytest.raises(ConflictError):
        jamiat_service.delete_jamiat(db, jamiat)


# =============================================================================
# Import
# =============================================================================


def test_import_creates_and_updates(db):
    existing = jamiat_service.create_jamiat(db, "MUM", "Bombay")
    jamiat_service.create_jamaat(db, existing.id, "001", "Old Name")

    result = jamiat_service.import_csv(
        db,
        HEADER
        + "MUM,Mumbai,001,Saifee Park\n"
        + "MUM,Mumbai,002,Bhendi Bazaar\n"
        + "PUN,Pune,001,Fakhri Mohalla\n",
    )

    assert result == {
        "total_rows": 3,
        "jamiats_created": 1,
        "jamiats_updated": 1,
        "jamaats_created": 2,
        "jamaats_updated": 1,
        "error_count": 0,
        "errors": [],
    }
    assert db.query(Jamiat).filter(Jamiat.jamiat_id == "MUM").one().name == "Mumbai"
    assert db.query(Jamaat).count() == 3


def test_import_reports_bad_rows_and_keeps_good_ones(db):
    result = jamiat_service.import_csv(
        db,
        HEADER + "MUM,Mumbai,001,Saifee Park\n" + "PUN,,002,Somewhere\n" + "PUN,Pune,b@d,X\n",
    )

    assert result["total_rows"] == 3
    assert result["jamaats_created"] == 1
    assert result["error_count"] == 2
    assert result["errors"] == [
        "Row 3: Missing required data",
        "Row 4: Invalid Jamiat ID or Jamaat ID",
    ]


def test_import_caps_reported_errors(db):
    text = HEADER + "".join(",,,\n" for _ in range(12))

    result = jamiat_service.import_csv(db, text)

    assert result["error_count"] == 12
    assert len(result["errors"]) == 10


def test_import_requires_all_columns(db):
    with pytest.raises(ValidationError) as exc_info:
        jamiat_service.import_csv(db, "Jamiat ID,Jamiat\nMUM,Mumbai\n")

    assert "Jamaat ID" in str(exc_info.value)


def test_import_accepts_bom_and_padded_headers(db):
    result = jamiat_service.import_csv(
        db, "\ufeff Jamiat ID , Jamiat ,Jamaat ID,Jamaat\nMUM,Mumbai,001,Saifee Park\n"
    )

    assert result["jamaats_created"] == 1


# =============================================================================
# Export
# =============================================================================


def test_export_orders_by_codes(db):
    jamiat_service.create_jamiat(db, "PUN", "Pune")
    mumbai = jamiat_service.create_jamiat(db, "MUM", "Mumbai")
    jamiat_service.create_jamaat(db, mumbai.id, "002", "Bhendi Bazaar")
    jamiat_service.create_jamaat(db, mumbai.id, "001", "Saifee Park")

    rows = _rows(jamiat_service.export_csv(db))

    assert rows == [
        list(jamiat_service.CSV_COLUMNS),
        ["MUM", "Mumbai", "001", "Saifee Park"],
        ["MUM", "Mumbai", "002", "Bhendi Bazaar"],
        ["PUN", "Pune", "", ""],
    ]


def test_export_escapes_formula_prefixes(db):
    jamiat = jamiat_service.create_jamiat(db, "MUM", "=HYPERLINK(\"x\")")
    jamiat_service.create_jamaat(db, jamiat.id, "001", "@SUM(A1)")

    rows = _rows(jamiat_service.export_csv(db))

    assert rows[1][1] == "'=HYPERLINK(\"x\")"
    assert rows[1][3] == "'@SUM(A1)"


def test_export_import_export_round_trip(db):
    jamiat_service.import_csv(
        db,
        HEADER
        + "PUN,Pune,001,Fakhri Mohalla\n"
        + "MUM,Mumbai,002,Bhendi Bazaar\n"
        + "MUM,Mumbai,001,Saifee Park\n",
    )
    exported = jamiat_service.export_csv(db)

    db.query(Jamaat).delete()
    db.query(Jamiat).delete()
    db.commit()
    db.expunge_all()
    result = jamiat_service.import_csv(db, exported)

    assert result["error_count"] == 0
    assert result["jamiats_created"] == 2
    assert result["jamaats_created"] == 3
    assert jamiat_service.export_csv(db) == exported
    assert _rows(exported)[1:] == [
        ["MUM", "Mumbai", "001", "Saifee Park"],
        ["MUM", "Mumbai", "002", "Bhendi Bazaar"],
        ["PUN", "Pune", "001", "Fakhri Mohalla"],
    ]


# =============================================================================
# API
# =============================================================================


@pytest.mark.asyncio
async def test_import_endpoint(client, auth_headers, super_admin):
    response = await client.post(
        "/api/jamiat/import",
        files={"file": ("masters.csv", HEADER + "MUM,Mumbai,001,Saifee Park\n", "text/csv")},
        headers=auth_headers(super_admin),
    )

    assert response.status_code == 200
    assert response.json()["jamiats_created"] == 1


@pytest.mark.asyncio
async def test_import_endpoint_rejects_non_csv(client, auth_headers, super_admin):
    response = await client.post(
        "/api/jamiat/import",
        files={"file": ("masters.xlsx", b"PK", "application/octet-stream")},
        headers=auth_headers(super_admin),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Only .csv files are accepted"}


@pytest.mark.asyncio
async def test_import_endpoint_requires_admin(client, auth_headers, dcm_user):
    response = await client.post(
        "/api/jamiat/import",
        files={"file": ("masters.csv", HEADER, "text/csv")},
        headers=auth_headers(dcm_user),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_template_and_export_download(client, db, auth_headers, dcm_user):
    jamiat_service.create_jamiat(db, "MUM", "Mumbai")
    headers = auth_headers(dcm_user)

    response = await client.get("/api/jamiat/template/download", headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert _rows(response.text) == [list(jamiat_service.CSV_COLUMNS)]

    response = await client.get("/api/jamiat/export", headers=headers)
    assert "jamiat_jamaat_export.csv" in response.headers["content-disposition"]
    assert _rows(response.text)[1] == ["MUM", "Mumbai", "", ""]
