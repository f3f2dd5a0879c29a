"""Users router - user administration and role assignments."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User, UserRole
from casework.schemas.user import (
    RoleAssignmentCreate,
    RoleAssignmentRead,
    UserActiveUpdate,
    UserCreate,
    UserListResponse,
    UserRead,
    UserUpdate,
)
from casework.services import role_service, user_service
from casework.services.errors import ValidationError

router = APIRouter()


def _assignment_to_read(assignment: UserRole) -> RoleAssignmentRead:
    return RoleAssignmentRead(
        id=assignment.id,
        user_id=assignment.user_id,
        role_id=assignment.role_id,
        role_name=assignment.role.name,
        assigned_by=assignment.assigned_by,
        assigned_at=assignment.assigned_at,
        expires_at=assignment.expires_at,
        is_active=assignment.is_active,
        jamiat_ids=assignment.jamiat_ids,
        jamaat_ids=assignment.jamaat_ids,
    )


# =============================================================================
# Users
# =============================================================================

@router.get("", response_model=UserListResponse)
def list_users(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.read")),
    search: str | None = Query(None, max_length=100),
    role: str | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
):
    items, total = user_service.list_users(
        db, search=search, role=role, is_active=is_active, page=page, limit=limit
    )
    return UserListResponse(
        items=[UserRead.model_validate(u) for u in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=UserRead, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.create")),
):
    return user_service.create_user(db, data.model_dump())


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.read")),
):
    return user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.update")),
):
    """Changing the primary role revokes the user's existing tokens."""
    target = user_service.get_user(db, user_id)
    return user_service.update_user(db, target, data.model_dump(exclude_unset=True))


@router.put("/{user_id}/toggle-status", response_model=UserRead)
def set_user_active(
    user_id: int,
    data: UserActiveUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.update")),
):
    if user_id == user.id and not data.is_active:
        raise ValidationError("You cannot deactivate your own account")
    target = user_service.get_user(db, user_id)
    return user_service.set_active(db, target, data.is_active)


@router.delete("/{user_id}", response_model=UserRead)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.delete")),
):
    """Users are never hard-deleted; this disables the account."""
    if user_id == user.id:
        raise ValidationError("You cannot deactivate your own account")
    return user_service.set_active(db, user_service.get_user(db, user_id), False)


@router.post("/{user_id}/revoke-sessions", status_code=204)
def revoke_sessions(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("users.update")),
):
    if not user_service.revoke_all_sessions(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")


# =============================================================================
# Role Assignments
# =============================================================================

@router.get("/{user_id}/roles", response_model=list[RoleAssignmentRead])
def list_role_assignments(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    user_service.get_user(db, user_id)
    return [_assignment_to_read(a) for a in role_service.list_assignments(db, user_id)]


@router.post("/{user_id}/roles", response_model=RoleAssignmentRead, status_code=201)
def assign_role(
    user_id: int,
    data: RoleAssignmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    """Grant an additional role, optionally expiring or limited to jamiats/jamaats."""
    target = user_service.get_user(db, user_id)
    role = role_service.get_role(db, data.role_id)
    assignment = role_service.assign_role(
        db,
        target,
        role,
        user,
        expires_at=data.expires_at,
        jamiat_ids=data.jamiat_ids,
        jamaat_ids=data.jamaat_ids,
    )
    return _assignment_to_read(assignment)


@router.delete("/{user_id}/roles/{role_id}", status_code=204)
def unassign_role(
    user_id: int,
    role_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    target = user_service.get_user(db, user_id)
    role = role_service.get_role(db, role_id)
    if not role_service.unassign_role(db, target, role):
        raise HTTPException(status_code=404, detail="Role assignment not found")
