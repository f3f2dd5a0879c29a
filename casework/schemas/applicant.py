"""Pydantic schemas for applicants."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from casework.db.enums import Gender


class ApplicantBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    full_name: str | None = Field(None, max_length=255)
    age: int | None = Field(None, ge=0, le=150)
    gender: Gender | None = None
    phone: str | None = Field(None, max_length=30)
    email: EmailStr | None = None
    address: str | None = None
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    occupation: str | None = Field(None, max_length=255)
    qualification: str | None = Field(None, max_length=255)
    idara: str | None = Field(None, max_length=255)
    jamiat_id: int | None = None
    jamaat_id: int | None = None
    photo: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v: str | None) -> str | None:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class ApplicantCreate(ApplicantBase):
    """Request schema for creating an applicant."""

    its_number: str = Field(..., pattern=r"^\d{8}$")


class ApplicantUpdate(BaseModel):
    """Request schema for updating an applicant (partial)."""

    its_number: str | None = Field(None, pattern=r"^\d{8}$")
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    full_name: str | None = Field(None, max_length=255)
    age: int | None = Field(None, ge=0, le=150)
    gender: Gender | None = None
    phone: str | None = Field(None, max_length=30)
    email: EmailStr | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    occupation: str | None = None
    qualification: str | None = None
    idara: str | None = None
    jamiat_id: int | None = None
    jamaat_id: int | None = None
    photo: str | None = None


class ApplicantRead(BaseModel):
    id: int
    its_number: str
    first_name: str
    last_name: str
    full_name: str | None
    age: int | None
    gender: str | None
    phone: str | None
    email: str | None
    address: str | None
    city: str | None
    state: str | None
    country: str | None
    occupation: str | None
    qualification: str | None
    idara: str | None
    jamiat_id: int | None
    jamaat_id: int | None
    photo: str | None
    its_lookup_failed: bool
    its_synced_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ApplicantListResponse(BaseModel):
    items: list[ApplicantRead]
    total: int
    page: int
    limit: int


class ItsApplicantRead(BaseModel):
    """Applicant data as returned by the ITS API (not persisted)."""

    its_number: str
    full_name: str | None
    first_name: str
    last_name: str
    age: int | None
    gender: str | None
    phone: str | None
    email: str | None
    address: str | None
    city: str | None
    state: str | None
    country: str | None
    occupation: str | None
    qualification: str | None
    idara: str | None
    jamiat_id: str | None
    jamaat_id: str | None
    photo: str | None


class BulkRefreshRequest(BaseModel):
    applicant_ids: list[int] | None = Field(None, max_length=500)


class BulkRefreshResponse(BaseModel):
    processed: int
    updated: int
    failed: int
    errors: list[str]
