"""Permission resolver for RBAC across multiple simultaneous roles.

Resolution:
- super_admin: always allowed (no table lookup)
- otherwise: OR across the user's primary role and every active, non-expired
  user_roles assignment; a role grants (resource, action) when its JSON blob
  or its role_permissions rows hold the action or the wildcard "all"
- assignments scoped to jamiat/jamaat ids only count for records in scope
- missing permission: deny
"""

from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from casework.core.permissions import WILDCARD_ACTION
from casework.core.policies import ActionPolicy
from casework.db.enums import Role as RoleName
from casework.db.models import Role, User, UserRole


# =============================================================================
# Role Grants
# =============================================================================

def _role_grants(role: Role) -> dict[str, set[str]]:
    """Union of the role's JSON blob and discrete permission rows."""
    grants: dict[str, set[str]] = {}
    for resource, actions in (role.permissions or {}).items():
        if isinstance(actions, str):
            actions = [actions]
        grants.setdefault(resource, set()).update(actions or [])
    for row in role.permission_rows:
        grants.setdefault(row.resource, set()).add(row.action)
    return grants


def _grants_action(role: Role, resource: str, action: str) -> bool:
    if role.name == RoleName.SUPER_ADMIN.value:
        return True
    if not role.is_active:
        return False
    actions = _role_grants(role).get(resource, set())
    return action in actions or WILDCARD_ACTION in actions


def get_role_by_name(db: Session, name: str) -> Role | None:
    return db.scalars(
        select(Role).options(selectinload(Role.permission_rows)).where(Role.name == name)
    ).first()


def role_has_permission(db: Session, role_name: str, resource: str, action: str) -> bool:
    """Check a single role. Unknown or inactive roles grant nothing."""
    if role_name == RoleName.SUPER_ADMIN.value:
        return True
    role = get_role_by_name(db, role_name)
    if not role:
        return False
    return _grants_action(role, resource, action)


# =============================================================================
# User Roles
# =============================================================================

def get_active_assignments(db: Session, user_id: int) -> list[UserRole]:
    """Active, non-expired assignments on active roles."""
    now = datetime.now(timezone.utc)
    return list(
        db.scalars(
            select(UserRole)
            .join(Role, Role.id == UserRole.role_id)
            .options(selectinload(UserRole.role).selectinload(Role.permission_rows))
            .where(
                UserRole.user_id == user_id,
                UserRole.is_active.is_(True),
                Role.is_active.is_(True),
                or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
            )
            .order_by(UserRole.id)
        )
    )


def _assignment_in_scope(
    assignment: UserRole, jamiat_id: int | None, jamaat_id: int | None
) -> bool:
    if assignment.jamiat_ids and jamiat_id is not None and jamiat_id not in assignment.jamiat_ids:
        return False
    if assignment.jamaat_ids and jamaat_id is not None and jamaat_id not in assignment.jamaat_ids:
        return False
    return True


def get_user_role_names(db: Session, user: User) -> list[str]:
    """Primary role first, then assigned roles, de-duplicated."""
    names = [user.role] if user.role else []
    for assignment in get_active_assignments(db, user.id):
        if assignment.role.name not in names:
            names.append(assignment.role.name)
    return names


def _candidate_roles(
    db: Session, user: User, jamiat_id: int | None = None, jamaat_id: int | None = None
) -> list[Role]:
    roles: list[Role] = []
    primary = get_role_by_name(db, user.role) if user.role else None
    if primary:
        roles.append(primary)
    for assignment in get_active_assignments(db, user.id):
        if _assignment_in_scope(assignment, jamiat_id, jamaat_id):
            roles.append(assignment.role)
    return roles


# =============================================================================
# Permission Resolution
# =============================================================================

def has_permission(
    db: Session,
    user: User,
    resource: str,
    action: str,
    *,
    jamiat_id: int | None = None,
    jamaat_id: int | None = None,
) -> bool:
    """True if any of the user's roles grants the permission."""
    if user.role == RoleName.SUPER_ADMIN.value:
        return True
    return any(
        _grants_action(role, resource, action)
        for role in _candidate_roles(db, user, jamiat_id, jamaat_id)
    )


def get_effective_permissions(db: Session, user: User) -> dict[str, list[str]]:
    """Union of grants across all roles, for display."""
    combined: dict[str, set[str]] = {}
    for role in _candidate_roles(db, user):
        if role.name == RoleName.SUPER_ADMIN.value:
            return {"*": [WILDCARD_ACTION]}
        if not role.is_active:
            continue
        for resource, actions in _role_grants(role).items():
            combined.setdefault(resource, set()).update(actions)
    return {resource: sorted(actions) for resource, actions in sorted(combined.items())}


def can_access_all_cases(db: Session, user: User) -> bool:
    """cases:read without the cases:case_assigned restriction."""
    if user.role == RoleName.SUPER_ADMIN.value:
        return True
    return has_permission(db, user, "cases", "read") and not has_permission(
        db, user, "cases", "case_assigned"
    )


def satisfies_policy(db: Session, user: User, policy: ActionPolicy) -> bool:
    """Legacy allow-list first, then the permission tables."""
    if policy.legacy_roles and set(get_user_role_names(db, user)) & policy.legacy_roles:
        return True
    if policy.resource and policy.action:
        return has_permission(db, user, policy.resource, policy.action)
    return False
