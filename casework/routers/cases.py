"""Cases router - API endpoints for case management and stage actions."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from casework.core.deps import get_current_user, get_db, require_permission
from casework.db.models import Case, User
from casework.schemas.case import (
    CaseActionRequest,
    CaseActionResponse,
    CaseCloseRequest,
    CaseCreate,
    CaseListItem,
    CaseListResponse,
    CaseRead,
    CaseUpdate,
    ClosureRead,
    CommentCreate,
    CommentRead,
    SlaStatusRead,
    StageSummary,
    StatusHistoryRead,
    WorkflowActionRequest,
    WorkflowEventRead,
)
from casework.services import case_action_service, case_service, workflow_stage_service

router = APIRouter()

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _case_to_read(case: Case) -> CaseRead:
    """Case detail with ledger and SLA standing."""
    stage = case.current_stage
    return CaseRead(
        id=case.id,
        case_number=case.case_number,
        applicant_id=case.applicant_id,
        case_type_id=case.case_type_id,
        status=case.status,
        current_workflow_stage_id=case.current_workflow_stage_id,
        current_stage=StageSummary.model_validate(stage) if stage else None,
        current_stage_entered_at=case.current_stage_entered_at,
        current_executive_level=case.current_executive_level,
        jamiat_id=case.jamiat_id,
        jamaat_id=case.jamaat_id,
        assigned_user_id=case.assigned_user_id,
        assigned_counselor_id=case.assigned_counselor_id,
        description=case.description,
        notes=case.notes,
        created_by=case.created_by,
        version=case.version,
        created_at=case.created_at,
        updated_at=case.updated_at,
        workflow_history=[WorkflowEventRead.model_validate(e) for e in case.workflow_events],
        sla=SlaStatusRead(
            **workflow_stage_service.compute_sla_status(stage, case.current_stage_entered_at)
        ),
    )


def _case_to_list_item(case: Case) -> CaseListItem:
    applicant = case.applicant
    return CaseListItem(
        id=case.id,
        case_number=case.case_number,
        applicant_id=case.applicant_id,
        applicant_name=applicant.display_name if applicant else None,
        its_number=applicant.its_number if applicant else None,
        case_type_id=case.case_type_id,
        status=case.status,
        current_workflow_stage_id=case.current_workflow_stage_id,
        current_stage_name=case.current_stage.stage_name if case.current_stage else None,
        current_executive_level=case.current_executive_level,
        assigned_user_id=case.assigned_user_id,
        assigned_counselor_id=case.assigned_counselor_id,
        created_at=case.created_at,
    )


def _load_with_access(db: Session, case_id: int, user: User) -> Case:
    case = case_service.get_case(db, case_id)
    case_service.authorize_case_access(db, user, case)
    return case


# =============================================================================
# CRUD
# =============================================================================

@router.get("", response_model=CaseListResponse)
def list_cases(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    status: str | None = None,
    case_type_id: int | None = None,
    stage_id: int | None = None,
    search: str | None = Query(None, max_length=100),
):
    """
    List cases with filters and pagination.

    Users without unrestricted cases:read only see cases assigned to them.
    """
    cases, total = case_service.list_cases(
        db,
        user,
        status=status,
        case_type_id=case_type_id,
        stage_id=stage_id,
        search=search,
        page=page,
        limit=limit,
    )
    return CaseListResponse(
        items=[_case_to_list_item(c) for c in cases],
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=CaseRead, status_code=201)
def create_case(
    data: CaseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.create")),
):
    """Create a case on the first workflow stage."""
    case = case_service.create_case(db, data.model_dump(mode="json"), user)
    return _case_to_read(case)


@router.get("/{case_id}", response_model=CaseRead)
def get_case(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _case_to_read(_load_with_access(db, case_id, user))


@router.put("/{case_id}", response_model=CaseRead)
def update_case(
    case_id: int,
    data: CaseUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.update")),
):
    """Update editable fields. Status and stage only change through actions."""
    case = _load_with_access(db, case_id, user)
    case = case_service.update_case(db, case, data.model_dump(exclude_unset=True), user)
    return _case_to_read(case)


@router.delete("/{case_id}", status_code=204)
def delete_case(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.delete")),
):
    """Delete a case. Refused with 409 while attachments exist."""
    case_service.delete_case(db, case_service.get_case(db, case_id))


@router.get("/{case_id}/history", response_model=list[StatusHistoryRead])
def get_status_history(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _load_with_access(db, case_id, user)
    return case_service.get_status_history(db, case_id)


# =============================================================================
# Comments and Closure
# =============================================================================

@router.get("/{case_id}/comments", response_model=list[CommentRead])
def list_comments(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _load_with_access(db, case_id, user)
    return case_service.list_comments(db, case_id)


@router.post("/{case_id}/comments", response_model=CommentRead, status_code=201)
def add_comment(
    case_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    case = _load_with_access(db, case_id, user)
    return case_service.add_comment(db, case, user, data.comment)


@router.post("/{case_id}/close", response_model=ClosureRead)
def close_case(
    case_id: int,
    data: CaseCloseRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.close")),
):
    """Close a case with a reason. Closed cases cannot be closed again."""
    _load_with_access(db, case_id, user)
    return case_service.close_case(db, case_id, user, data.reason)


@router.get("/{case_id}/closure", response_model=ClosureRead)
def get_closure(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _load_with_access(db, case_id, user)
    return case_service.get_closure(db, case_id)


# =============================================================================
# Stage Actions
# =============================================================================

@router.put("/{case_id}/welfare-approve", response_model=CaseActionResponse)
def welfare_approve(
    case_id: int,
    data: CaseActionRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.welfare_review")),
):
    """Approve at welfare review. The checklist must be submitted and complete."""
    comments = data.comments if data else None
    return case_action_service.welfare_approve(db, case_id, user, comments)


@router.put("/{case_id}/welfare-reject", response_model=CaseActionResponse)
def welfare_reject(
    case_id: int,
    data: CaseActionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.welfare_review")),
):
    return case_action_service.welfare_reject(db, case_id, user, data.comments)


@router.put("/{case_id}/welfare-forward-rework", response_model=CaseActionResponse)
def welfare_forward_rework(
    case_id: int,
    data: CaseActionRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.welfare_review")),
):
    """Forward an executive rework request back to the assignment stage."""
    comments = data.comments if data else None
    return case_action_service.welfare_forward_rework(db, case_id, user, comments)


@router.put("/{case_id}/resubmit-welfare", response_model=CaseActionResponse)
def resubmit_welfare(
    case_id: int,
    data: CaseActionRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.resubmit_welfare")),
):
    comments = data.comments if data else None
    return case_action_service.resubmit_welfare(db, case_id, user, comments)


@router.put("/{case_id}/executive-approve", response_model=CaseActionResponse)
def executive_approve(
    case_id: int,
    data: CaseActionRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.executive_review")),
):
    """Approve at the case's current executive level; the last level advances the case."""
    comments = data.comments if data else None
    return case_action_service.executive_approve(db, case_id, user, comments)


@router.put("/{case_id}/executive-rework", response_model=CaseActionResponse)
def executive_rework(
    case_id: int,
    data: CaseActionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("cases.executive_review")),
):
    return case_action_service.executive_rework(db, case_id, user, data.comments)


@router.put("/{case_id}/workflow-action", response_model=CaseActionResponse)
def workflow_action(
    case_id: int,
    data: WorkflowActionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Approve or reject at the current stage, authorized by stage grants."""
    return case_action_service.workflow_action(db, case_id, user, data.action, data.comments)
