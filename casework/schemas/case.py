"""Pydantic schemas for cases."""

from datetime import datetime

from pydantic import BaseModel, Field

from casework.schemas.applicant import ApplicantCreate


class CaseCreate(BaseModel):
    """
    Request schema for creating a case.

    `applicant_data` creates (or reuses by ITS number) the applicant inline;
    `jamiat_id`/`jamaat_id` are the external organization codes.
    """

    applicant_id: int | None = None
    applicant_data: ApplicantCreate | None = None
    case_type_id: int | None = None
    jamiat_id: str | None = Field(None, max_length=50)
    jamaat_id: str | None = Field(None, max_length=50)
    assigned_user_id: int | None = None
    assigned_counselor_id: int | None = None
    description: str | None = None
    notes: str | None = None


class CaseUpdate(BaseModel):
    """Request schema for updating a case (partial). Status and stage are not editable."""

    case_type_id: int | None = None
    jamiat_id: str | None = Field(None, max_length=50)
    jamaat_id: str | None = Field(None, max_length=50)
    assigned_user_id: int | None = None
    assigned_counselor_id: int | None = None
    description: str | None = None
    notes: str | None = None


class StageSummary(BaseModel):
    id: int
    stage_key: str
    stage_name: str
    sort_order: int

    model_config = {"from_attributes": True}


class WorkflowEventRead(BaseModel):
    """One ledger entry."""

    id: int
    stage_id: int | None
    stage_name: str
    action: str
    entered_at: datetime
    entered_by: int | None
    entered_by_name: str | None

    model_config = {"from_attributes": True}


class SlaStatusRead(BaseModel):
    status: str
    hours_elapsed: float
    hours_remaining: float | None
    hours_overdue: float
    sla_hours: float | None
    warning_hours: float | None


class CaseListItem(BaseModel):
    """Compact case for table views."""

    id: int
    case_number: str | None
    applicant_id: int
    applicant_name: str | None = None
    its_number: str | None = None
    case_type_id: int
    status: str
    current_workflow_stage_id: int | None
    current_stage_name: str | None = None
    current_executive_level: int | None
    assigned_user_id: int | None
    assigned_counselor_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CaseRead(BaseModel):
    """Full case response for detail views."""

    id: int
    case_number: str | None
    applicant_id: int
    case_type_id: int
    status: str
    current_workflow_stage_id: int | None
    current_stage: StageSummary | None = None
    current_stage_entered_at: datetime | None
    current_executive_level: int | None
    jamiat_id: int | None
    jamaat_id: int | None
    assigned_user_id: int | None
    assigned_counselor_id: int | None
    description: str | None
    notes: str | None
    created_by: int | None
    version: int
    created_at: datetime
    updated_at: datetime

    workflow_history: list[WorkflowEventRead] = []
    sla: SlaStatusRead | None = None

    model_config = {"from_attributes": True}


class CaseListResponse(BaseModel):
    """Paginated case list response."""

    items: list[CaseListItem]
    total: int
    page: int
    limit: int
    pages: int


class StatusHistoryRead(BaseModel):
    id: int
    from_status: str | None
    to_status: str
    changed_by: int | None
    comments: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1)


class CommentRead(BaseModel):
    id: int
    case_id: int
    user_id: int | None
    comment: str
    comment_type: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CaseCloseRequest(BaseModel):
    reason: str | None = None


class ClosureRead(BaseModel):
    id: int
    case_id: int
    reason: str
    closed_by: int | None
    closed_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Stage actions
# =============================================================================

class CaseActionRequest(BaseModel):
    """Body for welfare/executive actions. Some actions require comments."""

    comments: str | None = None


class WorkflowActionRequest(BaseModel):
    action: str = Field(..., pattern=r"^(approve|reject)$")
    comments: str | None = None


class NextStageRead(BaseModel):
    id: int
    stage_key: str
    stage_name: str


class CaseActionResponse(BaseModel):
    """Result of a workflow action, in the shape the frontend expects."""

    message: str
    caseId: int
    newStatus: str
    nextStage: NextStageRead | None = None
