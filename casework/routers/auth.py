"""Authentication router - current user profile and session revocation."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_current_user, get_db
from casework.db.models import User
from casework.schemas.auth import MeResponse
from casework.services import permission_service, user_service

router = APIRouter()


@router.get("/me", response_model=MeResponse)
def get_me(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Current user with every role they hold and their effective permissions.

    Expired or inactive role assignments are not included.
    """
    return MeResponse(
        user_id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        roles=permission_service.get_user_role_names(db, user),
        executive_level=user.executive_level,
        permissions=permission_service.get_effective_permissions(db, user),
        can_access_all_cases=permission_service.can_access_all_cases(db, user),
    )


@router.post("/logout", status_code=204)
def logout(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Invalidate every token issued to the current user."""
    user_service.revoke_all_sessions(db, user.id)
