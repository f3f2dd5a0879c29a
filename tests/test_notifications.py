"""
Notification tests.

Tests cover:
- Assignment notifications on case creation
- notify_users de-duplication
- Listing, unread count and read status through the API
- Other users' notifications are invisible (404)
"""

import pytest

from casework.db.enums import NotificationType
from casework.db.models import Notification
from casework.services import notification_service


# =============================================================================
# Service
# =============================================================================


def test_case_creation_notifies_assignees(db, make_case, counselor):
    case = make_case(assigned_counselor_id=counselor.id)

    rows = db.query(Notification).filter(Notification.user_id == counselor.id).all()
    assert len(rows) == 1
    assert rows[0].type == NotificationType.CASE_ASSIGNED.value
    assert rows[0].case_id == case.id
    assert case.case_number in rows[0].title


def test_notify_users_deduplicates(db, make_case, counselor):
    case = make_case()

    notified = notification_service.notify_users(
        db,
        [counselor.id, counselor.id],
        case,
        NotificationType.GENERAL,
        "Heads up",
    )
    db.commit()

    assert notified == [counselor.id]
    assert notification_service.get_unread_count(db, counselor.id) == 1


def test_create_notification_without_case(db, counselor):
    notification = notification_service.create_notification(
        db, counselor.id, NotificationType.GENERAL, "Reminder", message="Check the queue"
    )

    assert notification.id is not None
    assert notification.case_id is None
    assert notification.is_read is False
    assert notification_service.get_unread_count(db, counselor.id) == 1


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def counselor_inbox(db, make_case, counselor) -> list[Notification]:
    make_case(assigned_counselor_id=counselor.id)
    make_case(assigned_counselor_id=counselor.id)
    return (
        db.query(Notification)
        .filter(Notification.user_id == counselor.id)
        .order_by(Notification.id)
        .all()
    )


@pytest.mark.asyncio
async def test_list_notifications(client, auth_headers, counselor, counselor_inbox):
    response = await client.get("/api/notifications", headers=auth_headers(counselor))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["unread_count"] == 2
    assert {item["id"] for item in body["items"]} == {n.id for n in counselor_inbox}


@pytest.mark.asyncio
async def test_mark_read_updates_unread_count(client, auth_headers, counselor, counselor_inbox):
    headers = auth_headers(counselor)
    first = counselor_inbox[0]

    response = await client.put(f"/api/notifications/{first.id}/read", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None

    response = await client.get("/api/notifications/unread-count", headers=headers)
    assert response.json() == {"count": 1}

    response = await client.get("/api/notifications?unread_only=true", headers=headers)
    assert [item["id"] for item in response.json()["items"]] == [counselor_inbox[1].id]


@pytest.mark.asyncio
async def test_mark_all_read(client, auth_headers, counselor, counselor_inbox):
    headers = auth_headers(counselor)

    response = await client.put("/api/notifications/mark-all-read", headers=headers)
    assert response.json() == {"updated": 2}

    response = await client.get("/api/notifications/unread-count", headers=headers)
    assert response.json() == {"count": 0}


@pytest.mark.asyncio
async def test_other_users_notification_not_found(
    client, auth_headers, dcm_user, counselor_inbox
):
    notification_id = counselor_inbox[0].id

    response = await client.put(
        f"/api/notifications/{notification_id}/read", headers=auth_headers(dcm_user)
    )
    assert response.status_code == 404

    response = await client.delete(
        f"/api/notifications/{notification_id}", headers=auth_headers(dcm_user)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_own_notification(client, auth_headers, counselor, counselor_inbox):
    headers = auth_headers(counselor)

    response = await client.delete(f"/api/notifications/{counselor_inbox[0].id}", headers=headers)
    assert response.status_code == 204

    response = await client.get("/api/notifications", headers=headers)
    assert response.json()["total"] == 1
