"""
Workflow engine tests.

Tests cover:
- advance(): applied, unchanged, no_next_stage, no_current_stage
- Ledger and status history written with each transition
- Regression guard and executive level bookkeeping
- Optimistic version check on concurrent writes
- Stage-entry notification fan-out
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from casework.db.enums import CaseStatus, NotificationType, Role
from casework.db.models import (
    Case,
    CaseWorkflowEvent,
    ExecutiveLevel,
    Notification,
    StatusHistory,
    WorkflowStageRole,
    WorkflowStageUser,
)
from casework.services import notification_service, permission_service, workflow_service
from casework.services.workflow_service import (
    ConcurrentTransitionError,
    StageRegressionError,
)


def _events(db, case_id) -> list[CaseWorkflowEvent]:
    return (
        db.query(CaseWorkflowEvent)
        .filter(CaseWorkflowEvent.case_id == case_id)
        .order_by(CaseWorkflowEvent.id)
        .all()
    )


def _history(db, case_id) -> list[StatusHistory]:
    return (
        db.query(StatusHistory)
        .filter(StatusHistory.case_id == case_id)
        .order_by(StatusHistory.id)
        .all()
    )


# =============================================================================
# advance()
# =============================================================================


def test_advance_moves_to_next_stage(db, make_case, dcm_user):
    case = make_case()
    assert case.current_stage.stage_key == "draft"

    result = workflow_service.advance(db, case.id, "assigned", dcm_user)

    assert result["outcome"] == workflow_service.APPLIED
    assert result["from_status"] == CaseStatus.DRAFT.value
    assert result["new_status"] == CaseStatus.ASSIGNED.value
    assert result["next_stage"]["stage_key"] == "case_assignment"

    db.refresh(case)
    assert case.current_stage.stage_key == "case_assignment"
    assert case.status == CaseStatus.ASSIGNED.value
    assert case.current_stage_entered_at is not None


def test_advance_appends_ledger_and_history(db, make_case, dcm_user):
    case = make_case()
    workflow_service.advance(db, case.id, "assigned", dcm_user, comments="Ready")

    events = _events(db, case.id)
    assert [e.action for e in events] == ["case_created", "assigned"]
    assert events[-1].stage_name == "Case Assignment"
    assert events[-1].entered_by == dcm_user.id
    assert events[-1].entered_by_name == dcm_user.full_name

    history = _history(db, case.id)
    assert [(h.from_status, h.to_status) for h in history] == [
        (None, CaseStatus.DRAFT.value),
        (CaseStatus.DRAFT.value, CaseStatus.ASSIGNED.value),
    ]
    assert history[-1].comments == "Ready"


def test_advance_with_explicit_stage(db, make_case, stage_by_key, dcm_user):
    case = make_case()
    target = stage_by_key("counseling")

    result = workflow_service.advance(
        db, case.id, "skip_assignment", dcm_user, explicit_next_stage_id=target.id
    )

    assert result["next_stage"]["id"] == target.id
    assert result["new_status"] == CaseStatus.IN_COUNSELING.value


def test_advance_at_last_stage_returns_no_next_stage(db, make_case, place_case, dcm_user):
    case = place_case(make_case(), "completed")
    events_before = len(_events(db, case.id))

    result = workflow_service.advance(db, case.id, "approve", dcm_user)

    assert result["outcome"] == workflow_service.NO_NEXT_STAGE
    assert result["next_stage"] is None
    assert len(_events(db, case.id)) == events_before
    db.refresh(case)
    assert case.status == CaseStatus.COMPLETED.value


def test_advance_without_current_stage(db, make_case, dcm_user):
    case = make_case()
    case.current_workflow_stage_id = None
    db.commit()

    result = workflow_service.advance(db, case.id, "approve", dcm_user)

    assert result["outcome"] == workflow_service.NO_CURRENT_STAGE


def test_move_to_same_stage_and_status_is_unchanged(db, make_case, dcm_user):
    case = make_case()
    events_before = len(_events(db, case.id))

    locked = workflow_service.lock_case(db, case.id)
    result = workflow_service.move_to_stage(db, locked, locked.current_stage, "noop", dcm_user)

    assert result["outcome"] == workflow_service.UNCHANGED
    assert len(_events(db, case.id)) == events_before


# =============================================================================
# Guards
# =============================================================================


def test_regression_requires_explicit_flag(db, make_case, place_case, stage_by_key, dcm_user):
    case = place_case(make_case(), "counseling")
    draft = stage_by_key("draft")

    locked = workflow_service.lock_case(db, case.id)
    with pytest.raises(StageRegressionError):
        workflow_service.move_to_stage(db, locked, draft, "back", dcm_user)

    result = workflow_service.move_to_stage(
        db, locked, draft, "rework", dcm_user, allow_regression=True
    )
    assert result["outcome"] == workflow_service.APPLIED
    assert result["new_status"] == CaseStatus.DRAFT.value


def test_executive_stage_sets_first_level(db, make_case, place_case):
    case = place_case(make_case(), "executive_approval")
    assert case.current_executive_level == 1
    assert case.status == "submitted_to_executive_1"

    case = place_case(case, "finance_disbursement")
    assert case.current_executive_level is None


def test_executive_stage_enters_at_lowest_active_level(db, make_case, place_case):
    level_one = db.query(ExecutiveLevel).filter(ExecutiveLevel.level_number == 1).one()
    level_one.is_active = False
    db.commit()

    case = place_case(make_case(), "executive_approval")

    assert case.current_executive_level == 2
    assert case.status == "submitted_to_executive_2"


def test_stale_version_raises_concurrent_transition(db, make_case):
    case = make_case()
    locked = workflow_service.lock_case(db, case.id)

    # Another writer commits in between
    db.connection().execute(
        text("UPDATE cases SET version = version + 1 WHERE id = :id"), {"id": case.id}
    )
    locked.status = CaseStatus.ASSIGNED.value

    with pytest.raises(ConcurrentTransitionError):
        workflow_service.finish(db, commit=True)

    assert db.get(Case, case.id).status == CaseStatus.DRAFT.value


def test_version_increments_on_transition(db, make_case, dcm_user):
    case = make_case()
    version = case.version

    workflow_service.advance(db, case.id, "assigned", dcm_user)

    db.refresh(case)
    assert case.version == version + 1


def test_failed_notification_rolls_back_transition(db, make_case, dcm_user, monkeypatch):
    case = make_case()
    before = (case.status, case.current_workflow_stage_id)
    event_count = len(_events(db, case.id))
    history_count = len(_history(db, case.id))

    def broken_fan_out(*args, **kwargs):
        raise SQLAlchemyError("notifications table unavailable")

    monkeypatch.setattr(notification_service, "notify_stage_entered", broken_fan_out)

    with pytest.raises(SQLAlchemyError):
        workflow_service.advance(db, case.id, "assigned", dcm_user)

    db.refresh(case)
    assert (case.status, case.current_workflow_stage_id) == before
    assert len(_events(db, case.id)) == event_count
    assert len(_history(db, case.id)) == history_count


# =============================================================================
# Fan-out
# =============================================================================


def test_stage_entry_notifies_each_recipient_once(db, make_case, make_user, stage_by_key, dcm_user):
    stage = stage_by_key("case_assignment")
    dcm_role = permission_service.get_role_by_name(db, Role.DCM.value)
    direct = make_user(Role.COUNSELOR.value)
    inactive = make_user(Role.COUNSELOR.value, is_active=False)
    db.add_all([
        WorkflowStageRole(workflow_stage_id=stage.id, role_id=dcm_role.id, can_view=True),
        WorkflowStageUser(workflow_stage_id=stage.id, user_id=dcm_user.id, can_approve=True),
        WorkflowStageUser(workflow_stage_id=stage.id, user_id=direct.id, can_view=True),
        WorkflowStageUser(workflow_stage_id=stage.id, user_id=inactive.id, can_view=True),
    ])
    db.commit()
    case = make_case()

    result = workflow_service.advance(db, case.id, "assigned", dcm_user)

    assert result["notified_user_ids"] == sorted([dcm_user.id, direct.id])
    rows = db.query(Notification).filter(Notification.case_id == case.id).all()
    assert sorted(n.user_id for n in rows) == sorted([dcm_user.id, direct.id])
    assert {n.type for n in rows} == {NotificationType.WORKFLOW_STAGE.value}
    assert all(not n.is_read for n in rows)


def test_grant_without_view_or_approve_does_not_notify(db, make_case, counselor, stage_by_key, dcm_user):
    stage = stage_by_key("case_assignment")
    db.add(WorkflowStageUser(workflow_stage_id=stage.id, user_id=counselor.id, can_edit=True))
    db.commit()
    case = make_case()

    result = workflow_service.advance(db, case.id, "assigned", dcm_user)

    assert result["notified_user_ids"] == []
