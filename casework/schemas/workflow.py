"""Pydantic schemas for the workflow stage catalog."""

from datetime import datetime

from pydantic import BaseModel, Field

from casework.db.enums import SlaUnit


class StageCreate(BaseModel):
    stage_key: str = Field(..., min_length=1, max_length=100)
    stage_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    case_type_id: int | None = None
    next_stage_id: int | None = None
    associated_statuses: list[str] | None = None
    requires_comments_on_reject: bool = False
    sla_value: int | None = Field(None, gt=0)
    sla_unit: SlaUnit | None = None
    sla_warning_value: int | None = Field(None, gt=0)
    sla_warning_unit: SlaUnit | None = None


class StageUpdate(BaseModel):
    """Partial update. stage_key and case_type_id are immutable."""

    stage_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    sort_order: int | None = Field(None, ge=0)
    next_stage_id: int | None = None
    associated_statuses: list[str] | None = None
    requires_comments_on_reject: bool | None = None
    sla_value: int | None = Field(None, gt=0)
    sla_unit: SlaUnit | None = None
    sla_warning_value: int | None = Field(None, gt=0)
    sla_warning_unit: SlaUnit | None = None
    is_active: bool | None = None


class StageRead(BaseModel):
    id: int
    stage_key: str
    stage_name: str
    description: str | None
    sort_order: int
    case_type_id: int | None
    next_stage_id: int | None
    associated_statuses: list[str] | None
    requires_comments_on_reject: bool
    sla_value: int | None
    sla_unit: str | None
    sla_warning_value: int | None
    sla_warning_unit: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StageReorderRequest(BaseModel):
    ordered_stage_ids: list[int] = Field(..., min_length=1)


class StageGrantFlags(BaseModel):
    can_view: bool = False
    can_approve: bool = False
    can_reject: bool = False
    can_review: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_create: bool = False

    def as_flags(self) -> dict[str, bool]:
        """Grant names without the can_ prefix, as the service expects."""
        return {name.removeprefix("can_"): value for name, value in self.model_dump().items()}


class RoleGrantRead(StageGrantFlags):
    id: int
    workflow_stage_id: int
    role_id: int

    model_config = {"from_attributes": True}


class UserGrantRead(StageGrantFlags):
    id: int
    workflow_stage_id: int
    user_id: int

    model_config = {"from_attributes": True}


class StageGrantsResponse(BaseModel):
    roles: list[RoleGrantRead]
    users: list[UserGrantRead]
