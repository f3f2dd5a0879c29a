"""Dashboard router - API endpoints for dashboard widgets."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import User
from casework.services import dashboard_service

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================


class OverviewResponse(BaseModel):
    total_cases: int
    open_cases: int
    by_status: dict[str, int]
    unread_notifications: int


class PipelineEntry(BaseModel):
    status: str
    count: int


class ActivityItem(BaseModel):
    """One workflow ledger event."""

    case_id: int
    case_number: str
    stage_name: str
    action: str | None
    entered_at: datetime
    entered_by_name: str | None


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/overview", response_model=OverviewResponse)
def get_overview(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("dashboard.read")),
):
    """Counts are limited to the user's own cases unless they see all cases."""
    return dashboard_service.overview(db, user)


@router.get("/case-pipeline", response_model=list[PipelineEntry])
def get_case_pipeline(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("dashboard.read")),
):
    return dashboard_service.case_pipeline(db)


@router.get("/recent-activities", response_model=list[ActivityItem])
def get_recent_activities(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("dashboard.read")),
):
    return dashboard_service.recent_activity(db, limit=limit)
