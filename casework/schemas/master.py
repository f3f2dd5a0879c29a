"""Pydantic schemas for case types and executive levels."""

from pydantic import BaseModel, Field


class CaseTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    is_active: bool = True


class CaseTypeUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    is_active: bool | None = None


class CaseTypeRead(BaseModel):
    id: int
    name: str
    description: str | None
    sort_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class ExecutiveLevelCreate(BaseModel):
    level_number: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    is_active: bool = True


class ExecutiveLevelUpdate(BaseModel):
    level_number: int | None = Field(None, ge=1)
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    is_active: bool | None = None


class ExecutiveLevelRead(BaseModel):
    id: int
    level_number: int
    name: str
    description: str | None
    sort_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class ReorderRequest(BaseModel):
    ordered_ids: list[int] = Field(..., min_length=1)
