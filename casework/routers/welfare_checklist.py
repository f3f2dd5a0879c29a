"""Welfare checklist router - checklist masters and per-case responses."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User
from casework.schemas.checklist import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    CompletionStatusRead,
    GroupedCategoryRead,
    ItemCreate,
    ItemRead,
    ItemUpdate,
    ReorderRequest,
    ResponseRead,
    SubmitResponsesRequest,
)
from casework.services import case_service, checklist_service

router = APIRouter()


# =============================================================================
# Categories
# =============================================================================

@router.get("/categories", response_model=list[CategoryRead])
def list_categories(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    return checklist_service.list_categories(db, include_inactive=include_inactive)


@router.post("/categories", response_model=CategoryRead, status_code=201)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    return checklist_service.create_category(db, data.model_dump())


@router.put("/categories/reorder", response_model=list[CategoryRead])
def reorder_categories(
    data: ReorderRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    return checklist_service.reorder_categories(db, data.ordered_ids)


@router.get("/categories/{category_id}", response_model=CategoryRead)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    return checklist_service.get_category(db, category_id)


@router.put("/categories/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    category = checklist_service.get_category(db, category_id)
    return checklist_service.update_category(db, category, data.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    """Soft-delete; responses already recorded are kept."""
    checklist_service.deactivate_category(db, checklist_service.get_category(db, category_id))


# =============================================================================
# Items
# =============================================================================

@router.get("/items", response_model=list[ItemRead])
def list_items(
    category_id: int | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    return checklist_service.list_items(db, category_id=category_id)


@router.get("/items/grouped", response_model=list[GroupedCategoryRead])
def get_grouped_items(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    """Active categories with their active items, in display order."""
    return [
        GroupedCategoryRead(
            id=category.id,
            category_name=category.category_name,
            description=category.description,
            sort_order=category.sort_order,
            is_active=category.is_active,
            created_at=category.created_at,
            items=[ItemRead.model_validate(item) for item in category.items if item.is_active],
        )
        for category in checklist_service.get_grouped_items(db)
    ]


@router.post("/items", response_model=ItemRead, status_code=201)
def create_item(
    data: ItemCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    return checklist_service.create_item(db, data.model_dump())


@router.get("/items/{item_id}", response_model=ItemRead)
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    return checklist_service.get_item(db, item_id)


@router.put("/items/{item_id}", response_model=ItemRead)
def update_item(
    item_id: int,
    data: ItemUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    item = checklist_service.get_item(db, item_id)
    return checklist_service.update_item(db, item, data.model_dump(exclude_unset=True))


@router.delete("/items/{item_id}", status_code=204)
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.manage")),
):
    checklist_service.deactivate_item(db, checklist_service.get_item(db, item_id))


# =============================================================================
# Responses
# =============================================================================

@router.get("/responses/{case_id}", response_model=list[ResponseRead])
def get_responses(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    case_service.get_case(db, case_id)
    return checklist_service.get_responses(db, case_id)


@router.post("/responses/{case_id}", response_model=list[ResponseRead])
def submit_responses(
    case_id: int,
    data: SubmitResponsesRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.fill")),
):
    """Replace the case's checklist answers. Only while submitted to welfare."""
    case = case_service.get_case(db, case_id)
    checklist_service.submit_responses(
        db,
        case,
        [r.model_dump() for r in data.responses],
        data.overall_remarks,
        user,
    )
    return checklist_service.get_responses(db, case_id)


@router.get("/status/{case_id}", response_model=CompletionStatusRead)
def get_completion_status(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("checklist.read")),
):
    case_service.get_case(db, case_id)
    return checklist_service.get_completion_status(db, case_id)
