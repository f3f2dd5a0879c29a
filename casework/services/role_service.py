"""Role management: role records, permission grants and user assignments."""

from datetime import datetime, timezone

from sqlalchemy.orm import Session, selectinload

from casework.core.permissions import WILDCARD_ACTION, get_role_default_permissions, is_valid_permission
from casework.db.models import Role, RolePermission, User, UserRole
from casework.services.errors import ConflictError, NotFoundError, ValidationError


def list_roles(db: Session, include_inactive: bool = False) -> list[Role]:
    query = db.query(Role).options(selectinload(Role.permission_rows))
    if not include_inactive:
        query = query.filter(Role.is_active.is_(True))
    return query.order_by(Role.name).all()


def get_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if not role:
        raise NotFoundError("Role not found")
    return role


def _validate_permissions(permissions: dict[str, list[str]] | None) -> dict[str, list[str]]:
    cleaned: dict[str, list[str]] = {}
    for resource, actions in (permissions or {}).items():
        if isinstance(actions, str):
            actions = [actions]
        for action in actions:
            if action != WILDCARD_ACTION and not is_valid_permission(resource, action):
                raise ValidationError(f"Unknown permission '{resource}:{action}'")
        cleaned[resource] = sorted(set(actions))
    return cleaned


def _replace_permission_rows(db: Session, role: Role, rows: list[dict]) -> None:
    role.permission_rows.clear()
    db.flush()
    seen: set[tuple[str, str]] = set()
    for row in rows:
        resource, action = row.get("resource"), row.get("action")
        if not resource or not action:
            raise ValidationError("Permission rows need resource and action")
        if action != WILDCARD_ACTION and not is_valid_permission(resource, action):
            raise ValidationError(f"Unknown permission '{resource}:{action}'")
        if (resource, action) in seen:
            continue
        seen.add((resource, action))
        role.permission_rows.append(RolePermission(resource=resource, action=action))


def create_role(db: Session, data: dict) -> Role:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Role name is required")
    if db.query(Role).filter(Role.name == name).first():
        raise ConflictError("Role already exists")

    permissions = data.get("permissions")
    if permissions is None:
        permissions = get_role_default_permissions(name)
    role = Role(
        name=name,
        description=data.get("description"),
        permissions=_validate_permissions(permissions),
        is_active=data.get("is_active", True),
        is_system_role=False,
    )
    db.add(role)
    db.flush()
    if data.get("permission_rows"):
        _replace_permission_rows(db, role, data["permission_rows"])
    db.commit()
    db.refresh(role)
    return role


def update_role(db: Session, role: Role, changes: dict) -> Role:
    if changes.get("name") and changes["name"] != role.name:
        if role.is_system_role:
            raise ValidationError("System roles cannot be renamed")
        if db.query(Role).filter(Role.name == changes["name"], Role.id != role.id).first():
            raise ConflictError("Role already exists")
        role.name = changes["name"].strip()
    if "description" in changes:
        role.description = changes["description"]
    if changes.get("is_active") is not None:
        role.is_active = changes["is_active"]
    if changes.get("permissions") is not None:
        role.permissions = _validate_permissions(changes["permissions"])
    if changes.get("permission_rows") is not None:
        _replace_permission_rows(db, role, changes["permission_rows"])
    db.commit()
    db.refresh(role)
    return role


def delete_role(db: Session, role: Role) -> None:
    if role.is_system_role:
        raise ConflictError("System roles cannot be deleted")
    if db.query(User).filter(User.role == role.name).first():
        raise ConflictError("Role is the primary role of existing users")
    db.query(UserRole).filter(UserRole.role_id == role.id).delete(synchronize_session=False)
    db.delete(role)
    db.commit()


# =============================================================================
# Assignments
# =============================================================================

def list_assignments(db: Session, user_id: int) -> list[UserRole]:
    return (
        db.query(UserRole)
        .options(selectinload(UserRole.role))
        .filter(UserRole.user_id == user_id)
        .order_by(UserRole.assigned_at, UserRole.id)
        .all()
    )


def assign_role(
    db: Session,
    user: User,
    role: Role,
    assigned_by: User,
    *,
    expires_at: datetime | None = None,
    jamiat_ids: list[int] | None = None,
    jamaat_ids: list[int] | None = None,
) -> UserRole:
    """Assign (or re-activate) a role for a user."""
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            raise ValidationError("Expiry must be in the future")

    assignment = (
        db.query(UserRole)
        .filter(UserRole.user_id == user.id, UserRole.role_id == role.id)
        .first()
    )
    if assignment is None:
        assignment = UserRole(user_id=user.id, role_id=role.id)
        db.add(assignment)
    assignment.assigned_by = assigned_by.id
    assignment.assigned_at = datetime.now(timezone.utc)
    assignment.expires_at = expires_at
    assignment.is_active = True
    assignment.jamiat_ids = jamiat_ids or None
    assignment.jamaat_ids = jamaat_ids or None
    db.commit()
    db.refresh(assignment)
    return assignment


def unassign_role(db: Session, user: User, role: Role) -> bool:
    assignment = (
        db.query(UserRole)
        .filter(UserRole.user_id == user.id, UserRole.role_id == role.id, UserRole.is_active.is_(True))
        .first()
    )
    if not assignment:
        return False
    assignment.is_active = False
    db.commit()
    return True
