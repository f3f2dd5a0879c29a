"""
Authentication and user administration tests.

Tests cover:
- Bearer token validation (missing, invalid, expired, revoked, disabled)
- /api/auth/me and logout
- Token revocation on role change and deactivation
- Role assignments through the users API
"""

import pytest

from casework.core.security import create_access_token
from casework.db.enums import Role
from casework.services import permission_service


# =============================================================================
# Token Validation
# =============================================================================


@pytest.mark.asyncio
async def test_missing_token(client, seed):
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated"}


@pytest.mark.asyncio
async def test_malformed_token(client, seed):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid token"}


@pytest.mark.asyncio
async def test_expired_token(client, dcm_user):
    token = create_access_token(dcm_user.id, dcm_user.token_version, expires_hours=-1)

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid token"}


@pytest.mark.asyncio
async def test_unknown_user(client, seed):
    token = create_access_token(999, 0)

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.json() == {"detail": "User not found"}


@pytest.mark.asyncio
async def test_disabled_account(client, make_user, auth_headers):
    user = make_user(Role.DCM.value, is_active=False)

    response = await client.get("/api/auth/me", headers=auth_headers(user))

    assert response.status_code == 401
    assert response.json() == {"detail": "Account disabled"}


# =============================================================================
# Me / Logout
# =============================================================================


@pytest.mark.asyncio
async def test_me_reports_roles_and_permissions(client, auth_headers, dcm_user):
    response = await client.get("/api/auth/me", headers=auth_headers(dcm_user))

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == dcm_user.id
    assert body["roles"] == [Role.DCM.value]
    assert "create" in body["permissions"]["cases"]
    assert body["can_access_all_cases"] is True


@pytest.mark.asyncio
async def test_counselor_cannot_access_all_cases(client, auth_headers, counselor):
    response = await client.get("/api/auth/me", headers=auth_headers(counselor))

    assert response.json()["can_access_all_cases"] is False


@pytest.mark.asyncio
async def test_logout_revokes_token(client, auth_headers, dcm_user):
    headers = auth_headers(dcm_user)

    response = await client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 204

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"detail": "Token revoked"}


# =============================================================================
# Users API
# =============================================================================


@pytest.mark.asyncio
async def test_create_user_validates_role(client, auth_headers, super_admin):
    headers = auth_headers(super_admin)
    payload = {
        "username": "zainab",
        "email": "Zainab@Example.com",
        "full_name": "Zainab Ezzi",
        "role": Role.COUNSELOR.value,
    }

    response = await client.post("/api/users", json=payload, headers=headers)
    assert response.status_code == 201
    assert response.json()["email"] == "zainab@example.com"

    response = await client.post("/api/users", json=payload, headers=headers)
    assert response.status_code == 409

    response = await client.post(
        "/api/users",
        json={**payload, "username": "other", "email": "other@example.com", "role": "janitor"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "Unknown role 'janitor'"}


@pytest.mark.asyncio
async def test_users_api_requires_admin(client, auth_headers, dcm_user):
    response = await client.get("/api/users", headers=auth_headers(dcm_user))

    assert response.status_code == 403
    assert response.json() == {"detail": "Insufficient permissions"}


@pytest.mark.asyncio
async def test_role_change_revokes_tokens(client, auth_headers, super_admin, counselor):
    old_headers = auth_headers(counselor)

    response = await client.put(
        f"/api/users/{counselor.id}",
        json={"role": Role.WELFARE.value},
        headers=auth_headers(super_admin),
    )
    assert response.status_code == 200

    response = await client.get("/api/auth/me", headers=old_headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cannot_deactivate_self(client, auth_headers, super_admin):
    response = await client.delete(f"/api/users/{super_admin.id}", headers=auth_headers(super_admin))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_deactivate_user_blocks_login(client, auth_headers, super_admin, dcm_user):
    headers = auth_headers(dcm_user)

    response = await client.delete(f"/api/users/{dcm_user.id}", headers=auth_headers(super_admin))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_assign_and_unassign_role(client, db, auth_headers, super_admin, counselor):
    headers = auth_headers(super_admin)
    welfare = permission_service.get_role_by_name(db, Role.WELFARE.value)

    response = await client.post(
        f"/api/users/{counselor.id}/roles",
        json={"role_id": welfare.id, "jamiat_ids": [3]},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["role_name"] == Role.WELFARE.value
    assert response.json()["jamiat_ids"] == [3]

    response = await client.get("/api/auth/me", headers=auth_headers(counselor))
    assert set(response.json()["roles"]) == {Role.COUNSELOR.value, Role.WELFARE.value}

    response = await client.delete(f"/api/users/{counselor.id}/roles/{welfare.id}", headers=headers)
    assert response.status_code == 204

    response = await client.delete(f"/api/users/{counselor.id}/roles/{welfare.id}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_role_rejects_past_expiry(client, db, auth_headers, super_admin, counselor):
    welfare = permission_service.get_role_by_name(db, Role.WELFARE.value)

    response = await client.post(
        f"/api/users/{counselor.id}/roles",
        json={"role_id": welfare.id, "expires_at": "2000-01-01T00:00:00Z"},
        headers=auth_headers(super_admin),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Expiry must be in the future"}
