"""Pydantic schemas for API request/response models."""

from casework.schemas.applicant import (
    ApplicantCreate,
    ApplicantListResponse,
    ApplicantRead,
    ApplicantUpdate,
)
from casework.schemas.auth import MeResponse
from casework.schemas.case import (
    CaseActionRequest,
    CaseActionResponse,
    CaseCreate,
    CaseListItem,
    CaseListResponse,
    CaseRead,
    CaseUpdate,
    StatusHistoryRead,
    WorkflowActionRequest,
)
from casework.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = [
    # Auth
    "MeResponse",
    # User
    "UserCreate",
    "UserRead",
    "UserUpdate",
    # Applicant
    "ApplicantCreate",
    "ApplicantUpdate",
    "ApplicantRead",
    "ApplicantListResponse",
    # Case
    "CaseCreate",
    "CaseUpdate",
    "CaseRead",
    "CaseListItem",
    "CaseListResponse",
    "StatusHistoryRead",
    "CaseActionRequest",
    "CaseActionResponse",
    "WorkflowActionRequest",
]
