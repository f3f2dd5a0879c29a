"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel


class MeResponse(BaseModel):
    """Response schema for GET /api/auth/me."""
    user_id: int
    username: str
    email: str
    full_name: str
    role: str
    roles: list[str]
    executive_level: int | None
    permissions: dict[str, list[str]]
    can_access_all_cases: bool
