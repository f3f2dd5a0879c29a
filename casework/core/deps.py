"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from casework.core.policies import get_policy
from casework.core.security import decode_access_token
from casework.db.session import SessionLocal


BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Get authenticated user from the bearer token.

    Validates:
    - Authorization header carries a bearer token
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    from casework.db.models import User

    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Token revoked")

    return user


def require_permission(policy_key: str):
    """
    Dependency factory for policy-based authorization.

    The policy's legacy roles and its (resource, action) pair are both
    honored; see core/policies.py.

    Usage:
        @router.post("", dependencies=[Depends(require_permission("cases.create"))])
    """
    policy = get_policy(policy_key)

    def dependency(request: Request, db: Session = Depends(get_db)):
        from casework.services import permission_service

        user = get_current_user(request, db)
        if not permission_service.satisfies_policy(db, user, policy):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


def get_its_gateway():
    """ITS gateway dependency (overridden in tests)."""
    from casework.services.its_gateway import get_default_gateway

    return get_default_gateway()
