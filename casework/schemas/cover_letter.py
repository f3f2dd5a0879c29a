"""Pydantic schemas for cover letter forms."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from casework.schemas.case import NextStageRead


class CoverLetterSave(BaseModel):
    """Sections are free-form objects edited by the frontend."""

    case_id: int
    applicant_details: dict[str, Any] | None = None
    counsellor_details: dict[str, Any] | None = None
    financial_overview: dict[str, Any] | None = None
    proposed_upliftment_plan: str | None = None
    financial_assistance: dict[str, Any] | None = None
    non_financial_assistance: str | None = None
    projected_income: dict[str, Any] | None = None
    case_management_comments: str | None = None


class CoverLetterRead(BaseModel):
    id: int
    case_id: int
    applicant_details: dict[str, Any] | None
    counsellor_details: dict[str, Any] | None
    financial_overview: dict[str, Any] | None
    proposed_upliftment_plan: str | None
    financial_assistance: dict[str, Any] | None
    non_financial_assistance: str | None
    projected_income: dict[str, Any] | None
    case_management_comments: str | None
    is_complete: bool
    submitted_by: int | None
    submitted_at: datetime | None
    is_approved: bool
    approved_by: int | None
    approved_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CoverLetterSubmitResponse(BaseModel):
    message: str
    form: CoverLetterRead
    newStatus: str | None = None
    nextStage: NextStageRead | None = None
