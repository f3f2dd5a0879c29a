"""
Permission service resolution tests.

Tests cover:
- super_admin bypass (always true)
- OR across primary role and assigned roles
- Wildcard "all" and discrete role_permissions rows
- Expired, inactive and out-of-scope assignments
- Policy evaluation (legacy allow-list, then tables)
"""

from datetime import datetime, timedelta, timezone

import pytest

from casework.core.policies import get_policy
from casework.db.enums import Role
from casework.db.models import Role as RoleRecord, RolePermission, UserRole
from casework.services import permission_service


# =============================================================================
# Helpers
# =============================================================================


def _assign(db, user, role_name, **kwargs) -> UserRole:
    role = permission_service.get_role_by_name(db, role_name)
    assignment = UserRole(user_id=user.id, role_id=role.id, **kwargs)
    db.add(assignment)
    db.commit()
    return assignment


# =============================================================================
# Primary role
# =============================================================================


def test_super_admin_has_every_permission(db, super_admin):
    assert permission_service.has_permission(db, super_admin, "cases", "delete")
    assert permission_service.has_permission(db, super_admin, "anything", "whatever")


def test_primary_role_grants_from_json_blob(db, dcm_user):
    assert permission_service.has_permission(db, dcm_user, "cases", "create")
    assert not permission_service.has_permission(db, dcm_user, "cases", "delete")


def test_wildcard_action_grants_every_action(db, make_user):
    admin = make_user(Role.ADMIN.value)
    assert permission_service.has_permission(db, admin, "cases", "delete")
    assert permission_service.has_permission(db, admin, "master", "update")
    assert not permission_service.has_permission(db, admin, "roles", "manage")


def test_permission_rows_are_honored(db, make_user):
    role = RoleRecord(name="auditor", permissions={}, is_active=True)
    db.add(role)
    db.flush()
    db.add(RolePermission(role_id=role.id, resource="dashboard", action="read"))
    db.commit()

    auditor = make_user("auditor")
    assert permission_service.has_permission(db, auditor, "dashboard", "read")
    assert not permission_service.has_permission(db, auditor, "cases", "read")


def test_inactive_role_grants_nothing(db, make_user):
    role = permission_service.get_role_by_name(db, Role.ZI.value)
    role.is_active = False
    db.commit()

    zi = make_user(Role.ZI.value)
    assert not permission_service.has_permission(db, zi, "cases", "read")


def test_missing_permission_denies(db, counselor):
    assert not permission_service.has_permission(db, counselor, "users", "read")


def test_role_has_permission_single_role(db, seed):
    assert permission_service.role_has_permission(db, Role.SUPER_ADMIN.value, "roles", "manage")
    assert permission_service.role_has_permission(db, Role.DCM.value, "cases", "create")
    assert not permission_service.role_has_permission(db, Role.DCM.value, "cases", "delete")
    assert not permission_service.role_has_permission(db, "no_such_role", "cases", "read")


# =============================================================================
# Assigned roles
# =============================================================================


def test_assignment_adds_permissions(db, counselor):
    assert not permission_service.has_permission(db, counselor, "welfare_checklist", "fill")

    _assign(db, counselor, Role.WELFARE.value)

    assert permission_service.has_permission(db, counselor, "welfare_checklist", "fill")
    # Primary role grants still apply
    assert permission_service.has_permission(db, counselor, "cover_letter_forms", "submit")


def test_expired_assignment_is_ignored(db, counselor):
    _assign(
        db,
        counselor,
        Role.WELFARE.value,
        expires_at=datetime.now(timezone.utc) - timedelta(days=1),
    )
    assert not permission_service.has_permission(db, counselor, "welfare_checklist", "fill")


def test_future_expiry_still_counts(db, counselor):
    _assign(
        db,
        counselor,
        Role.WELFARE.value,
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
    )
    assert permission_service.has_permission(db, counselor, "welfare_checklist", "fill")


def test_inactive_assignment_is_ignored(db, counselor):
    _assign(db, counselor, Role.WELFARE.value, is_active=False)
    assert not permission_service.has_permission(db, counselor, "welfare_checklist", "fill")


def test_scoped_assignment_only_counts_in_scope(db, counselor):
    _assign(db, counselor, Role.ZI.value, jamiat_ids=[5])

    assert permission_service.has_permission(db, counselor, "dashboard", "read", jamiat_id=5)
    assert not permission_service.has_permission(db, counselor, "dashboard", "read", jamiat_id=6)


def test_role_names_primary_first_without_duplicates(db, counselor):
    _assign(db, counselor, Role.WELFARE.value)
    _assign(db, counselor, Role.COUNSELOR.value)

    assert permission_service.get_user_role_names(db, counselor) == [
        Role.COUNSELOR.value,
        Role.WELFARE.value,
    ]


def test_effective_permissions_union(db, counselor):
    _assign(db, counselor, Role.WELFARE.value)
    perms = permission_service.get_effective_permissions(db, counselor)

    assert perms["welfare_checklist"] == ["fill", "read"]
    assert set(perms["cases"]) == {"case_assigned", "read", "update"}


# =============================================================================
# Case visibility
# =============================================================================


def test_case_assigned_restricts_full_visibility(db, counselor, make_user):
    assert not permission_service.can_access_all_cases(db, counselor)
    assert permission_service.can_access_all_cases(db, make_user(Role.ZI.value))


# =============================================================================
# Policies
# =============================================================================


@pytest.mark.parametrize(
    "role, policy_key, expected",
    [
        (Role.SUPER_ADMIN.value, "roles.manage", True),
        (Role.ADMIN.value, "roles.manage", False),
        (Role.WELFARE.value, "checklist.fill", True),
        (Role.DCM.value, "checklist.fill", False),
        (Role.DCM.value, "cases.read", True),
        (Role.COUNSELOR.value, "cases.read", False),
        (Role.FINANCE.value, "cases.close", True),
        (Role.EXECUTIVE.value, "cases.executive_review", True),
        (Role.WELFARE.value, "cases.executive_review", False),
    ],
)
def test_satisfies_policy(db, make_user, role, policy_key, expected):
    user = make_user(role)
    assert permission_service.satisfies_policy(db, user, get_policy(policy_key)) is expected


def test_unknown_policy_raises():
    with pytest.raises(KeyError):
        get_policy("cases.teleport")
