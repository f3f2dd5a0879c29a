"""User service - user records, activation and token revocation."""

from sqlalchemy import or_
from sqlalchemy.orm import Session

from casework.db.models import ExecutiveLevel, Role, User
from casework.services.errors import ConflictError, NotFoundError, ValidationError

USER_FIELDS = ("username", "email", "full_name", "role", "its_number", "phone", "executive_level")


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.query(User).filter(User.email == email.lower()).first()


def list_users(
    db: Session,
    search: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[User], int]:
    query = db.query(User)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(User.username.ilike(term), User.email.ilike(term), User.full_name.ilike(term))
        )
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    total = query.count()
    items = query.order_by(User.full_name, User.id).offset((page - 1) * limit).limit(limit).all()
    return items, total


def _check_unique(db: Session, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    for column, value, label in ((User.username, username, "Username"), (User.email, email, "Email")):
        if not value:
            continue
        query = db.query(User).filter(column == value)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError(f"{label} already exists")


def _check_role(db: Session, role: str) -> None:
    if not db.query(Role).filter(Role.name == role, Role.is_active.is_(True)).first():
        raise ValidationError(f"Unknown role '{role}'")


def _check_executive_level(db: Session, level: int | None) -> None:
    if level is None:
        return
    if not db.query(ExecutiveLevel).filter(ExecutiveLevel.level_number == level).first():
        raise ValidationError(f"Unknown executive level {level}")


def create_user(db: Session, data: dict) -> User:
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    full_name = (data.get("full_name") or "").strip()
    role = (data.get("role") or "").strip()
    if not username or not email or not full_name or not role:
        raise ValidationError("Username, email, full name and role are required")
    _check_unique(db, username, email)
    _check_role(db, role)
    _check_executive_level(db, data.get("executive_level"))

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        role=role,
        its_number=data.get("its_number"),
        phone=data.get("phone"),
        executive_level=data.get("executive_level"),
        is_active=data.get("is_active", True),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user: User, changes: dict) -> User:
    if "email" in changes and changes["email"]:
        changes = {**changes, "email": changes["email"].strip().lower()}
    _check_unique(db, changes.get("username"), changes.get("email"), exclude_id=user.id)
    if changes.get("role"):
        _check_role(db, changes["role"])
    if "executive_level" in changes:
        _check_executive_level(db, changes["executive_level"])

    role_changed = changes.get("role") and changes["role"] != user.role
    for field in USER_FIELDS:
        if field in changes and (changes[field] is not None or field == "executive_level"):
            setattr(user, field, changes[field])
    if role_changed:
        user.token_version += 1
    db.commit()
    db.refresh(user)
    return user


def set_active(db: Session, user: User, is_active: bool) -> User:
    """
    Enable or disable a user.

    Disabling also revokes all sessions by bumping token_version.
    """
    user.is_active = is_active
    if not is_active:
        user.token_version += 1
    db.commit()
    db.refresh(user)
    return user


def revoke_all_sessions(db: Session, user_id: int) -> bool:
    """
    Revoke all sessions for a user by bumping token_version.

    Existing tokens with old version will fail validation.
    """
    user = db.get(User, user_id)
    if not user:
        return False
    user.token_version += 1
    db.commit()
    return True
