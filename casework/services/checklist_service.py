"""Welfare checklist: categories, items, and per-case responses."""

from typing import TypedDict

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from casework.db.enums import CaseStatus
from casework.db.models import (
    Case,
    User,
    WelfareChecklistCategory,
    WelfareChecklistItem,
    WelfareChecklistResponse,
)
from casework.services.errors import NotFoundError, ValidationError

PROPERLY_FILLED_VALUES = ("Y", "N")

CATEGORY_FIELDS = ("category_name", "description", "sort_order", "is_active")
ITEM_FIELDS = (
    "category_id",
    "form_section",
    "checklist_detail",
    "sort_order",
    "is_compulsory",
    "is_active",
)


class CompletionStatus(TypedDict):
    total: int
    filled: int
    is_complete: bool
    completion_percentage: int


# =============================================================================
# Categories
# =============================================================================

def list_categories(db: Session, include_inactive: bool = False) -> list[WelfareChecklistCategory]:
    query = db.query(WelfareChecklistCategory)
    if not include_inactive:
        query = query.filter(WelfareChecklistCategory.is_active.is_(True))
    return query.order_by(WelfareChecklistCategory.sort_order, WelfareChecklistCategory.id).all()


def get_category(db: Session, category_id: int) -> WelfareChecklistCategory:
    category = db.get(WelfareChecklistCategory, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def create_category(db: Session, data: dict) -> WelfareChecklistCategory:
    name = (data.get("category_name") or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    sort_order = data.get("sort_order")
    if sort_order is None:
        sort_order = (db.query(func.max(WelfareChecklistCategory.sort_order)).scalar() or 0) + 1
    category = WelfareChecklistCategory(
        category_name=name,
        description=data.get("description"),
        sort_order=sort_order,
        is_active=data.get("is_active", True),
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category: WelfareChecklistCategory, changes: dict) -> WelfareChecklistCategory:
    for field in CATEGORY_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(category, field, changes[field])
    db.commit()
    db.refresh(category)
    return category


def deactivate_category(db: Session, category: WelfareChecklistCategory) -> None:
    category.is_active = False
    db.commit()


def reorder_categories(db: Session, ordered_ids: list[int]) -> list[WelfareChecklistCategory]:
    categories = {
        c.id: c
        for c in db.query(WelfareChecklistCategory)
        .filter(WelfareChecklistCategory.id.in_(ordered_ids))
        .all()
    }
    missing = set(ordered_ids) - set(categories)
    if missing:
        raise NotFoundError(f"Categories not found: {sorted(missing)}")
    for position, category_id in enumerate(ordered_ids, start=1):
        categories[category_id].sort_order = position
    db.commit()
    return [categories[cid] for cid in ordered_ids]


# =============================================================================
# Items
# =============================================================================

def _active_items_query(db: Session):
    return (
        db.query(WelfareChecklistItem)
        .join(WelfareChecklistCategory, WelfareChecklistCategory.id == WelfareChecklistItem.category_id)
        .filter(
            WelfareChecklistItem.is_active.is_(True),
            WelfareChecklistCategory.is_active.is_(True),
        )
    )


def list_items(db: Session, category_id: int | None = None) -> list[WelfareChecklistItem]:
    query = _active_items_query(db)
    if category_id:
        query = query.filter(WelfareChecklistItem.category_id == category_id)
    return query.order_by(
        WelfareChecklistCategory.sort_order,
        WelfareChecklistItem.sort_order,
        WelfareChecklistItem.id,
    ).all()


def get_grouped_items(db: Session) -> list[WelfareChecklistCategory]:
    """Active categories (ordered), each carrying only its active items."""
    categories = (
        db.query(WelfareChecklistCategory)
        .options(selectinload(WelfareChecklistCategory.items))
        .filter(WelfareChecklistCategory.is_active.is_(True))
        .order_by(WelfareChecklistCategory.sort_order, WelfareChecklistCategory.id)
        .all()
    )
    return [c for c in categories if any(item.is_active for item in c.items)]


def get_item(db: Session, item_id: int) -> WelfareChecklistItem:
    item = db.get(WelfareChecklistItem, item_id)
    if not item:
        raise NotFoundError("Checklist item not found")
    return item


def create_item(db: Session, data: dict) -> WelfareChecklistItem:
    get_category(db, data.get("category_id") or 0)
    if not (data.get("form_section") or "").strip() or not (data.get("checklist_detail") or "").strip():
        raise ValidationError("Form section and checklist detail are required")
    sort_order = data.get("sort_order")
    if sort_order is None:
        sort_order = (
            db.query(func.max(WelfareChecklistItem.sort_order))
            .filter(WelfareChecklistItem.category_id == data["category_id"])
            .scalar()
            or 0
        ) + 1
    item = WelfareChecklistItem(
        category_id=data["category_id"],
        form_section=data["form_section"].strip(),
        checklist_detail=data["checklist_detail"].strip(),
        sort_order=sort_order,
        is_compulsory=data.get("is_compulsory", False),
        is_active=data.get("is_active", True),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_item(db: Session, item: WelfareChecklistItem, changes: dict) -> WelfareChecklistItem:
    if changes.get("category_id") is not None:
        get_category(db, changes["category_id"])
    for field in ITEM_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(item, field, changes[field])
    db.commit()
    db.refresh(item)
    return item


def deactivate_item(db: Session, item: WelfareChecklistItem) -> None:
    item.is_active = False
    db.commit()


# =============================================================================
# Responses
# =============================================================================

def get_responses(db: Session, case_id: int) -> list[WelfareChecklistResponse]:
    return (
        db.query(WelfareChecklistResponse)
        .join(WelfareChecklistItem, WelfareChecklistItem.id == WelfareChecklistResponse.checklist_item_id)
        .filter(WelfareChecklistResponse.case_id == case_id)
        .order_by(WelfareChecklistItem.sort_order, WelfareChecklistItem.id)
        .all()
    )


def submit_responses(
    db: Session,
    case: Case,
    responses: list[dict],
    overall_remarks: str | None,
    actor: User,
) -> list[WelfareChecklistResponse]:
    """
    Replace the case's responses in one transaction.

    Only while the case is submitted_to_welfare. properly_filled must be Y or N
    (case-insensitive); comments are required for Y.
    """
    if case.status != CaseStatus.SUBMITTED_TO_WELFARE.value:
        raise ValidationError("Case must be in submitted_to_welfare status to fill checklist")
    if not responses:
        raise ValidationError("Responses array is required")

    active_ids = {item.id for item in _active_items_query(db).all()}
    remarks = overall_remarks.strip() if overall_remarks and overall_remarks.strip() else None

    rows: list[WelfareChecklistResponse] = []
    seen: set[int] = set()
    for response in responses:
        item_id = response.get("checklist_item_id")
        filled = (response.get("properly_filled") or "").strip().upper()
        comments = (response.get("comments") or "").strip() or None
        if not item_id or not filled:
            raise ValidationError(
                "Checklist item ID and properly filled status are required for each response"
            )
        if item_id not in active_ids:
            raise NotFoundError(f"Checklist item {item_id} not found")
        if filled not in PROPERLY_FILLED_VALUES:
            raise ValidationError("Properly filled must be 'Y' or 'N'")
        if filled == "Y" and not comments:
            raise ValidationError(f"Comments are required for checklist item {item_id}")
        if item_id in seen:
            raise ValidationError(f"Duplicate response for checklist item {item_id}")
        seen.add(item_id)
        rows.append(
            WelfareChecklistResponse(
                case_id=case.id,
                checklist_item_id=item_id,
                properly_filled=filled,
                comments=comments,
                overall_remarks=remarks,
                filled_by=actor.id,
            )
        )

    try:
        db.query(WelfareChecklistResponse).filter(
            WelfareChecklistResponse.case_id == case.id
        ).delete(synchronize_session=False)
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return rows


def get_completion_status(db: Session, case_id: int) -> CompletionStatus:
    active_item_ids = (
        select(WelfareChecklistItem.id)
        .join(WelfareChecklistCategory, WelfareChecklistCategory.id == WelfareChecklistItem.category_id)
        .where(
            WelfareChecklistItem.is_active.is_(True),
            WelfareChecklistCategory.is_active.is_(True),
        )
    )
    total = db.scalar(select(func.count()).select_from(active_item_ids.subquery())) or 0
    filled = (
        db.query(func.count(func.distinct(WelfareChecklistResponse.checklist_item_id)))
        .filter(
            WelfareChecklistResponse.case_id == case_id,
            WelfareChecklistResponse.checklist_item_id.in_(active_item_ids),
        )
        .scalar()
        or 0
    )
    return {
        "total": total,
        "filled": filled,
        "is_complete": total > 0 and filled >= total,
        "completion_percentage": round(filled / total * 100) if total else 0,
    }
