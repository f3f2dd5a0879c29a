"""Pydantic schemas for the welfare checklist."""

from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    category_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    is_active: bool = True


class CategoryUpdate(BaseModel):
    category_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    is_active: bool | None = None


class CategoryRead(BaseModel):
    id: int
    category_name: str
    description: str | None
    sort_order: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ReorderRequest(BaseModel):
    ordered_ids: list[int] = Field(..., min_length=1)


class ItemCreate(BaseModel):
    category_id: int
    form_section: str = Field(..., min_length=1, max_length=255)
    checklist_detail: str = Field(..., min_length=1)
    sort_order: int | None = Field(None, ge=0)
    is_compulsory: bool = False
    is_active: bool = True


class ItemUpdate(BaseModel):
    category_id: int | None = None
    form_section: str | None = Field(None, min_length=1, max_length=255)
    checklist_detail: str | None = Field(None, min_length=1)
    sort_order: int | None = Field(None, ge=0)
    is_compulsory: bool | None = None
    is_active: bool | None = None


class ItemRead(BaseModel):
    id: int
    category_id: int
    form_section: str
    checklist_detail: str
    sort_order: int
    is_compulsory: bool
    is_active: bool

    model_config = {"from_attributes": True}


class GroupedCategoryRead(CategoryRead):
    items: list[ItemRead]


class ResponseItem(BaseModel):
    checklist_item_id: int
    properly_filled: str = Field(..., min_length=1, max_length=1)
    comments: str | None = None


class SubmitResponsesRequest(BaseModel):
    responses: list[ResponseItem] = Field(..., min_length=1)
    overall_remarks: str | None = None


class ResponseRead(BaseModel):
    id: int
    case_id: int
    checklist_item_id: int
    properly_filled: str
    comments: str | None
    overall_remarks: str | None
    filled_by: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CompletionStatusRead(BaseModel):
    total: int
    filled: int
    is_complete: bool
    completion_percentage: int
