"""Workflow stages router - stage catalog, stage grants and SLA lookups."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from casework.core.deps import get_current_user, get_db, require_permission
from casework.db.models import User, WorkflowStage
from casework.schemas.case import SlaStatusRead
from casework.schemas.workflow import (
    RoleGrantRead,
    StageCreate,
    StageGrantFlags,
    StageGrantsResponse,
    StageRead,
    StageReorderRequest,
    StageUpdate,
    UserGrantRead,
)
from casework.services import case_service, workflow_stage_service

router = APIRouter()


def _get_stage_or_404(db: Session, stage_id: int) -> WorkflowStage:
    stage = workflow_stage_service.get_stage(db, stage_id)
    if not stage:
        raise HTTPException(status_code=404, detail="Workflow stage not found")
    return stage


# =============================================================================
# Catalog
# =============================================================================

@router.get("", response_model=list[StageRead])
def list_stages(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    case_type_id: int | None = None,
    include_inactive: bool = False,
    all_scopes: bool = Query(False, description="Every stage regardless of case type"),
):
    """Stages in workflow order (type-scoped before global at the same sort_order)."""
    return workflow_stage_service.list_stages(
        db, case_type_id=case_type_id, include_inactive=include_inactive, all_scopes=all_scopes
    )


@router.put("/reorder", response_model=list[StageRead])
def reorder_stages(
    data: StageReorderRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    return workflow_stage_service.reorder_stages(db, data.ordered_stage_ids)


@router.get("/sla/case/{case_id}", response_model=SlaStatusRead)
def get_case_sla(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    case = case_service.get_case(db, case_id)
    case_service.authorize_case_access(db, user, case)
    return workflow_stage_service.compute_sla_status(case.current_stage, case.current_stage_entered_at)


@router.get("/{stage_id}", response_model=StageRead)
def get_stage(
    stage_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _get_stage_or_404(db, stage_id)


@router.post("", response_model=StageRead, status_code=201)
def create_stage(
    data: StageCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.create")),
):
    values = data.model_dump(mode="json")
    return workflow_stage_service.create_stage(
        db, values.pop("stage_key"), values.pop("stage_name"), **values
    )


@router.put("/{stage_id}", response_model=StageRead)
def update_stage(
    stage_id: int,
    data: StageUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    stage = _get_stage_or_404(db, stage_id)
    return workflow_stage_service.update_stage(
        db, stage, data.model_dump(mode="json", exclude_unset=True)
    )


@router.delete("/{stage_id}", response_model=StageRead)
def deactivate_stage(
    stage_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.delete")),
):
    """Soft-delete a stage. Refused with 409 while cases sit on it."""
    return workflow_stage_service.deactivate_stage(db, _get_stage_or_404(db, stage_id))


@router.put("/{stage_id}/restore", response_model=StageRead)
def restore_stage(
    stage_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    return workflow_stage_service.restore_stage(db, _get_stage_or_404(db, stage_id))


# =============================================================================
# Stage Grants
# =============================================================================

@router.get("/{stage_id}/grants", response_model=StageGrantsResponse)
def get_grants(
    stage_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.read")),
):
    stage = _get_stage_or_404(db, stage_id)
    return StageGrantsResponse(
        roles=[RoleGrantRead.model_validate(g) for g in stage.role_grants],
        users=[UserGrantRead.model_validate(g) for g in stage.user_grants],
    )


@router.put("/{stage_id}/roles/{role_id}", response_model=RoleGrantRead)
def set_role_grant(
    stage_id: int,
    role_id: int,
    data: StageGrantFlags,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    stage = _get_stage_or_404(db, stage_id)
    return workflow_stage_service.set_role_grant(db, stage, role_id, data.as_flags())


@router.delete("/{stage_id}/roles/{role_id}", status_code=204)
def remove_role_grant(
    stage_id: int,
    role_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    stage = _get_stage_or_404(db, stage_id)
    if not workflow_stage_service.remove_role_grant(db, stage, role_id):
        raise HTTPException(status_code=404, detail="Role grant not found")


@router.put("/{stage_id}/users/{user_id}", response_model=UserGrantRead)
def set_user_grant(
    stage_id: int,
    user_id: int,
    data: StageGrantFlags,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    stage = _get_stage_or_404(db, stage_id)
    return workflow_stage_service.set_user_grant(db, stage, user_id, data.as_flags())


@router.delete("/{stage_id}/users/{user_id}", status_code=204)
def remove_user_grant(
    stage_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("master.update")),
):
    stage = _get_stage_or_404(db, stage_id)
    if not workflow_stage_service.remove_user_grant(db, stage, user_id):
        raise HTTPException(status_code=404, detail="User grant not found")
