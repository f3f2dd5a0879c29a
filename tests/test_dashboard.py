"""Dashboard widget tests."""

import pytest

from casework.db.enums import CaseStatus, PIPELINE_STATUS_ORDER
from casework.services import dashboard_service


def test_overview_limited_to_own_cases(db, make_case, counselor, dcm_user):
    make_case(assigned_counselor_id=counselor.id)
    make_case()

    mine = dashboard_service.overview(db, counselor)
    everything = dashboard_service.overview(db, dcm_user)

    assert mine["total_cases"] == 1
    assert mine["by_status"] == {CaseStatus.ASSIGNED.value: 1}
    assert mine["unread_notifications"] == 1
    assert everything["total_cases"] == 2


def test_overview_excludes_terminal_from_open(db, make_case, place_case, dcm_user):
    place_case(make_case(), "completed")
    make_case()

    overview = dashboard_service.overview(db, dcm_user)

    assert overview["total_cases"] == 2
    assert overview["open_cases"] == 1


def test_pipeline_lists_canonical_then_extra_statuses(db, make_case, place_case):
    make_case()
    place_case(make_case(), "executive_approval")

    pipeline = dashboard_service.case_pipeline(db)

    statuses = [entry["status"] for entry in pipeline]
    assert statuses[: len(PIPELINE_STATUS_ORDER)] == list(PIPELINE_STATUS_ORDER)
    assert statuses[len(PIPELINE_STATUS_ORDER):] == ["submitted_to_executive_1"]
    assert pipeline[0] == {"status": CaseStatus.DRAFT.value, "count": 1}


@pytest.mark.asyncio
async def test_recent_activities_endpoint(client, auth_headers, make_case, dcm_user):
    case = make_case()

    response = await client.get("/api/dashboard/recent-activities?limit=5", headers=auth_headers(dcm_user))

    assert response.status_code == 200
    assert response.json()[0]["case_number"] == case.case_number
    assert response.json()[0]["action"] == "case_created"


@pytest.mark.asyncio
async def test_dashboard_requires_permission(client, auth_headers, counselor):
    response = await client.get("/api/dashboard/overview", headers=auth_headers(counselor))

    assert response.status_code == 403
