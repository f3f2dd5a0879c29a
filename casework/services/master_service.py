"""Master data: case types and executive levels."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from casework.db.models import Case, CaseType, ExecutiveLevel, User
from casework.services.errors import ConflictError, NotFoundError, ValidationError


# =============================================================================
# Case Types
# =============================================================================

def list_case_types(db: Session, include_inactive: bool = False) -> list[CaseType]:
    query = db.query(CaseType)
    if not include_inactive:
        query = query.filter(CaseType.is_active.is_(True))
    return query.order_by(CaseType.sort_order, CaseType.name).all()


def get_case_type(db: Session, case_type_id: int) -> CaseType:
    case_type = db.get(CaseType, case_type_id)
    if not case_type:
        raise NotFoundError("Case type not found")
    return case_type


def create_case_type(db: Session, data: dict) -> CaseType:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Case type name is required")
    if db.query(CaseType).filter(CaseType.name == name).first():
        raise ConflictError("Case type already exists")
    case_type = CaseType(
        name=name,
        description=data.get("description"),
        sort_order=data.get("sort_order") or 0,
        is_active=data.get("is_active", True),
    )
    db.add(case_type)
    db.commit()
    db.refresh(case_type)
    return case_type


def update_case_type(db: Session, case_type: CaseType, changes: dict) -> CaseType:
    if changes.get("name"):
        name = changes["name"].strip()
        taken = db.query(CaseType).filter(CaseType.name == name, CaseType.id != case_type.id).first()
        if taken:
            raise ConflictError("Case type already exists")
        case_type.name = name
    for field in ("description", "sort_order", "is_active"):
        if field in changes and changes[field] is not None:
            setattr(case_type, field, changes[field])
    db.commit()
    db.refresh(case_type)
    return case_type


def deactivate_case_type(db: Session, case_type: CaseType) -> CaseType:
    case_type.is_active = False
    db.commit()
    db.refresh(case_type)
    return case_type


# =============================================================================
# Executive Levels
# =============================================================================

def list_levels(db: Session, include_inactive: bool = True) -> list[ExecutiveLevel]:
    query = db.query(ExecutiveLevel)
    if not include_inactive:
        query = query.filter(ExecutiveLevel.is_active.is_(True))
    return query.order_by(ExecutiveLevel.sort_order, ExecutiveLevel.level_number).all()


def active_levels(db: Session) -> list[ExecutiveLevel]:
    """Active levels in approval order."""
    return list_levels(db, include_inactive=False)


def get_level(db: Session, level_id: int) -> ExecutiveLevel:
    level = db.get(ExecutiveLevel, level_id)
    if not level:
        raise NotFoundError("Executive level not found")
    return level


def _check_level_unique(db: Session, level_number: int | None, name: str | None, exclude_id: int | None = None) -> None:
    if level_number is not None:
        query = db.query(ExecutiveLevel).filter(ExecutiveLevel.level_number == level_number)
        if exclude_id is not None:
            query = query.filter(ExecutiveLevel.id != exclude_id)
        if query.first():
            raise ConflictError("Level number already exists")
    if name:
        query = db.query(ExecutiveLevel).filter(ExecutiveLevel.name == name)
        if exclude_id is not None:
            query = query.filter(ExecutiveLevel.id != exclude_id)
        if query.first():
            raise ConflictError("Level name already exists")


def create_level(db: Session, data: dict) -> ExecutiveLevel:
    level_number = data.get("level_number")
    name = (data.get("name") or "").strip()
    if not level_number or level_number < 1 or not name:
        raise ValidationError("Level number (positive) and name are required")
    _check_level_unique(db, level_number, name)

    sort_order = data.get("sort_order")
    if sort_order is None:
        sort_order = (db.query(func.max(ExecutiveLevel.sort_order)).scalar() or 0) + 1
    level = ExecutiveLevel(
        level_number=level_number,
        name=name,
        description=data.get("description"),
        sort_order=sort_order,
        is_active=data.get("is_active", True),
    )
    db.add(level)
    db.commit()
    db.refresh(level)
    return level


def update_level(db: Session, level: ExecutiveLevel, changes: dict) -> ExecutiveLevel:
    _check_level_unique(db, changes.get("level_number"), changes.get("name"), exclude_id=level.id)
    for field in ("level_number", "name", "description", "sort_order", "is_active"):
        if field in changes and changes[field] is not None:
            setattr(level, field, changes[field])
    db.commit()
    db.refresh(level)
    return level


def delete_level(db: Session, level: ExecutiveLevel) -> None:
    """Delete a level no user or case currently references."""
    in_use = (
        db.query(User).filter(User.executive_level == level.level_number).first()
        or db.query(Case).filter(Case.current_executive_level == level.level_number).first()
    )
    if in_use:
        raise ConflictError("Executive level is assigned to users or cases")
    db.delete(level)
    db.commit()


def reorder_levels(db: Session, ordered_ids: list[int]) -> list[ExecutiveLevel]:
    levels = {
        level.id: level
        for level in db.query(ExecutiveLevel).filter(ExecutiveLevel.id.in_(ordered_ids)).all()
    }
    missing = set(ordered_ids) - set(levels)
    if missing:
        raise NotFoundError(f"Executive levels not found: {sorted(missing)}")
    for position, level_id in enumerate(ordered_ids, start=1):
        levels[level_id].sort_order = position
    db.commit()
    return [levels[level_id] for level_id in ordered_ids]
