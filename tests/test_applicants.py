"""
Applicant tests.

Tests cover:
- ITS number format and uniqueness
- Delete refused while cases reference the applicant
- Single and bulk refresh from ITS
"""

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from casework.db.models import Applicant
from casework.services import applicant_service, jamiat_service
from casework.services.errors import ConflictError, ValidationError
from casework.services.its_gateway import ItsNotFoundError

ITS_NUMBER = "12345678"
PAYLOAD = {
    "Fullname": "Husain Ali Bhai",
    "Age": "42",
    "Gender": "M",
    "Mobile": "9800000000",
    "City": "Pune",
    "Jamiaat_ID": "PUN",
    "Jamaat_ID": "001",
}


@pytest.fixture
def applicant(db) -> Applicant:
    return applicant_service.create_applicant(
        db, {"its_number": ITS_NUMBER, "first_name": "Husain", "last_name": "Bhai"}
    )


# =============================================================================
# CRUD
# =============================================================================


@pytest.mark.parametrize("its_number", ["1234567", "123456789", "abcdefgh", ""])
def test_its_number_must_be_eight_digits(db, its_number):
    with pytest.raises(ValidationError):
        applicant_service.create_applicant(
            db, {"its_number": its_number, "first_name": "A", "last_name": "B"}
        )


def test_duplicate_its_number_conflicts(db, applicant):
    with pytest.raises(ConflictError):
        applicant_service.create_applicant(
            db, {"its_number": ITS_NUMBER, "first_name": "Other", "last_name": "Person"}
        )


def test_full_name_defaults_from_parts(applicant):
    assert applicant.full_name == "Husain Bhai"


@pytest.mark.asyncio
async def test_delete_refused_with_cases(client, auth_headers, super_admin, make_case):
    case = make_case()

    response = await client.delete(
        f"/api/applicants/{case.applicant_id}", headers=auth_headers(super_admin)
    )

    assert response.status_code == 409
    assert response.json() == {"detail": "Cannot delete applicant with existing cases"}


@pytest.mark.asyncio
async def test_search_applicants(client, auth_headers, dcm_user, applicant):
    response = await client.get("/api/applicants?search=Husain", headers=auth_headers(dcm_user))

    assert response.status_code == 200
    assert [a["its_number"] for a in response.json()["items"]] == [ITS_NUMBER]


# =============================================================================
# ITS Refresh
# =============================================================================


def test_refresh_merges_its_data(db, applicant, its_gateway, its_routes):
    pune = jamiat_service.create_jamiat(db, "PUN", "Pune")
    jamaat = jamiat_service.create_jamaat(db, pune.id, "001", "Fakhri Mohalla")
    its_routes[f"/test/its-user/{ITS_NUMBER}"] = httpx.Response(200, json={"data": PAYLOAD})

    refreshed = applicant_service.refresh_from_its(db, its_gateway, applicant)

    assert refreshed.full_name == "Husain Ali Bhai"
    assert refreshed.age == 42
    assert refreshed.city == "Pune"
    assert refreshed.jamiat_id == pune.id
    assert refreshed.jamaat_id == jamaat.id
    assert refreshed.its_synced_at is not None
    assert refreshed.its_lookup_failed is False


def test_refresh_not_found_marks_applicant(db, applicant, its_gateway):
    with pytest.raises(ItsNotFoundError):
        applicant_service.refresh_from_its(db, its_gateway, applicant)

    db.refresh(applicant)
    assert applicant.its_lookup_failed is True


def test_bulk_refresh_skips_previous_misses(db, applicant, its_gateway, its_routes):
    other = applicant_service.create_applicant(
        db, {"its_number": "87654321", "first_name": "Zahra", "last_name": "Ezzi"}
    )
    its_routes[f"/test/its-user/{ITS_NUMBER}"] = httpx.Response(200, json={"data": PAYLOAD})

    first = applicant_service.bulk_refresh_from_its(db, its_gateway)

    assert first["processed"] == 2
    assert first["updated"] == 1
    assert first["failed"] == 1
    assert first["errors"] == ["87654321: ITS number not found in external system"]

    second = applicant_service.bulk_refresh_from_its(db, its_gateway)
    assert second["processed"] == 1

    # Explicit ids include previously failed lookups
    third = applicant_service.bulk_refresh_from_its(db, its_gateway, [other.id])
    assert third["processed"] == 1


def test_bulk_refresh_continues_after_database_error(
    db, applicant, its_gateway, its_routes, monkeypatch
):
    other = applicant_service.create_applicant(
        db, {"its_number": "87654321", "first_name": "Zahra", "last_name": "Ezzi"}
    )
    its_routes[f"/test/its-user/{ITS_NUMBER}"] = httpx.Response(200, json={"data": PAYLOAD})
    its_routes["/test/its-user/87654321"] = httpx.Response(200, json={"data": PAYLOAD})
    resolve = applicant_service.resolve_org_codes
    calls = []

    def flaky_resolve(*args):
        calls.append(args)
        if len(calls) == 1:
            raise OperationalError("UPDATE applicants", {}, Exception("database is locked"))
        return resolve(*args)

    monkeypatch.setattr(applicant_service, "resolve_org_codes", flaky_resolve)

    result = applicant_service.bulk_refresh_from_its(db, its_gateway)

    assert result["processed"] == 2
    assert result["updated"] == 1
    assert result["failed"] == 1
    assert result["errors"] == [f"{ITS_NUMBER}: Database error while saving"]
    db.refresh(applicant)
    db.refresh(other)
    assert applicant.its_synced_at is None
    assert other.its_synced_at is not None


@pytest.mark.asyncio
async def test_refresh_endpoint_maps_not_found(client, auth_headers, super_admin, applicant):
    response = await client.post(
        f"/api/applicants/{applicant.id}/refresh-from-its", headers=auth_headers(super_admin)
    )

    assert response.status_code == 404
