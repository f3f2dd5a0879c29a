"""Roles router - role definitions and the permission catalog."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.core.permissions import get_all_permissions
from casework.db.models import User
from casework.schemas.user import PermissionDefRead, RoleCreate, RoleRead, RoleUpdate
from casework.services import role_service

router = APIRouter()


@router.get("/permissions/available", response_model=list[PermissionDefRead])
def list_available_permissions(user: User = Depends(require_permission("roles.manage"))):
    return [
        PermissionDefRead(
            key=p.key, resource=p.resource, action=p.action, label=p.label, category=p.category
        )
        for p in get_all_permissions()
    ]


@router.get("", response_model=list[RoleRead])
def list_roles(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    return role_service.list_roles(db, include_inactive=include_inactive)


@router.post("", response_model=RoleRead, status_code=201)
def create_role(
    data: RoleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    """Without explicit permissions, a built-in role name gets its default grants."""
    return role_service.create_role(db, data.model_dump())


@router.get("/{role_id}", response_model=RoleRead)
def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    return role_service.get_role(db, role_id)


@router.put("/{role_id}", response_model=RoleRead)
def update_role(
    role_id: int,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    role = role_service.get_role(db, role_id)
    return role_service.update_role(db, role, data.model_dump(exclude_unset=True))


@router.delete("/{role_id}", status_code=204)
def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("roles.manage")),
):
    role_service.delete_role(db, role_service.get_role(db, role_id))
