"""User and role Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    role: str = Field(..., min_length=1, max_length=100)
    its_number: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=30)
    executive_level: int | None = None
    is_active: bool = True


class UserUpdate(BaseModel):
    """Partial update. Sending executive_level: null clears it."""

    username: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    full_name: str | None = Field(None, min_length=1, max_length=255)
    role: str | None = Field(None, min_length=1, max_length=100)
    its_number: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=30)
    executive_level: int | None = None


class UserActiveUpdate(BaseModel):
    is_active: bool


class UserRead(BaseModel):
    """Response schema for reading a user."""

    id: int
    username: str
    email: str
    full_name: str
    role: str
    its_number: str | None
    phone: str | None
    executive_level: int | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    items: list[UserRead]
    total: int
    page: int
    limit: int


# =============================================================================
# Roles
# =============================================================================

class PermissionRow(BaseModel):
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=100)

    model_config = {"from_attributes": True}


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    permissions: dict[str, list[str]] | None = None
    permission_rows: list[PermissionRow] | None = None
    is_active: bool = True


class RoleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    permissions: dict[str, list[str]] | None = None
    permission_rows: list[PermissionRow] | None = None
    is_active: bool | None = None


class RoleRead(BaseModel):
    id: int
    name: str
    description: str | None
    permissions: dict[str, list[str]] | None
    permission_rows: list[PermissionRow]
    is_active: bool
    is_system_role: bool

    model_config = {"from_attributes": True}


class RoleAssignmentCreate(BaseModel):
    role_id: int
    expires_at: datetime | None = None
    jamiat_ids: list[int] | None = None
    jamaat_ids: list[int] | None = None


class RoleAssignmentRead(BaseModel):
    id: int
    user_id: int
    role_id: int
    role_name: str
    assigned_by: int | None
    assigned_at: datetime
    expires_at: datetime | None
    is_active: bool
    jamiat_ids: list[int] | None
    jamaat_ids: list[int] | None


class PermissionDefRead(BaseModel):
    key: str
    resource: str
    action: str
    label: str
    category: str
