"""Pydantic schemas for jamiat/jamaat masters."""

from pydantic import BaseModel, Field


class JamiatCreate(BaseModel):
    jamiat_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True


class JamiatUpdate(BaseModel):
    jamiat_id: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=255)
    is_active: bool | None = None


class JamiatRead(BaseModel):
    id: int
    jamiat_id: str
    name: str
    is_active: bool

    model_config = {"from_attributes": True}


class JamaatCreate(BaseModel):
    jamiat_id: int  # internal id of the parent jamiat
    jamaat_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True


class JamaatUpdate(BaseModel):
    jamiat_id: int | None = None
    jamaat_id: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=255)
    is_active: bool | None = None


class JamaatRead(BaseModel):
    id: int
    jamiat_id: int
    jamaat_id: str
    name: str
    is_active: bool

    model_config = {"from_attributes": True}


class ImportResultRead(BaseModel):
    total_rows: int
    jamiats_created: int
    jamiats_updated: int
    jamaats_created: int
    jamaats_updated: int
    error_count: int
    errors: list[str]
