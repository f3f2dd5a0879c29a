"""Pydantic schemas for counseling forms."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from casework.schemas.case import NextStageRead


class CounselingFormRead(BaseModel):
    id: int
    case_id: int
    personal_details: dict[str, Any] | None
    family_details: dict[str, Any] | None
    assessment: dict[str, Any] | None
    financial_assistance: dict[str, Any] | None
    economic_growth: dict[str, Any] | None
    declaration: dict[str, Any] | None
    attachments: dict[str, Any] | None
    is_complete: bool
    completed_by: int | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CounselingCompleteResponse(BaseModel):
    message: str
    form: CounselingFormRead
    newStatus: str | None = None
    nextStage: NextStageRead | None = None
