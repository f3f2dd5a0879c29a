"""
Workflow stage catalog tests.

Tests cover:
- Stage ordering (sort_order, type-scoped before global at a tie)
- Successor resolution (explicit id > next_stage_id > next sort_order)
- Stage CRUD guards
- Stage-scoped grants
- SLA standing
"""

from datetime import datetime, timedelta, timezone

import pytest

from casework.db.enums import Role, SlaUnit
from casework.db.models import CaseType, WorkflowStage, WorkflowStageRole, WorkflowStageUser
from casework.services import permission_service, workflow_stage_service
from casework.services.errors import ConflictError, NotFoundError, ValidationError


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def medical(db) -> CaseType:
    case_type = CaseType(name="medical", sort_order=1, is_active=True)
    db.add(case_type)
    db.commit()
    return case_type


@pytest.fixture
def education(db) -> CaseType:
    case_type = CaseType(name="education", sort_order=2, is_active=True)
    db.add(case_type)
    db.commit()
    return case_type


def _stage(db, key, sort_order, case_type_id=None, **kwargs) -> WorkflowStage:
    stage = WorkflowStage(
        stage_key=key,
        stage_name=key.replace("_", " ").title(),
        sort_order=sort_order,
        case_type_id=case_type_id,
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(stage)
    db.commit()
    return stage


# =============================================================================
# Ordering
# =============================================================================


def test_first_stage_is_lowest_sort_order(db, medical):
    _stage(db, "review", 2)
    intake = _stage(db, "intake", 1)

    assert workflow_stage_service.first_stage(db, medical.id).id == intake.id


def test_type_scoped_stage_wins_tie_with_global(db, medical):
    _stage(db, "global_intake", 1)
    scoped = _stage(db, "medical_intake", 1, case_type_id=medical.id)

    assert workflow_stage_service.first_stage(db, medical.id).id == scoped.id


def test_global_only_when_case_type_has_no_scoped_stage(db, medical, education):
    global_intake = _stage(db, "global_intake", 1)
    _stage(db, "medical_intake", 1, case_type_id=medical.id)

    assert workflow_stage_service.first_stage(db, education.id).id == global_intake.id


def test_list_stages_hides_other_types_and_inactive(db, medical, education):
    _stage(db, "shared", 1)
    _stage(db, "medical_only", 2, case_type_id=medical.id)
    _stage(db, "education_only", 2, case_type_id=education.id)
    _stage(db, "retired", 3, is_active=False)

    keys = [s.stage_key for s in workflow_stage_service.list_stages(db, medical.id)]
    assert keys == ["shared", "medical_only"]

    keys = [
        s.stage_key
        for s in workflow_stage_service.list_stages(db, medical.id, include_inactive=True)
    ]
    assert keys == ["shared", "medical_only", "retired"]


# =============================================================================
# Successor Resolution
# =============================================================================


def test_next_stage_by_sort_order(db, medical):
    intake = _stage(db, "intake", 1)
    _stage(db, "closing", 5)
    review = _stage(db, "review", 2)

    assert workflow_stage_service.resolve_next_stage(db, intake, medical.id).id == review.id


def test_next_stage_skips_inactive(db, medical):
    intake = _stage(db, "intake", 1)
    _stage(db, "review", 2, is_active=False)
    closing = _stage(db, "closing", 3)

    assert workflow_stage_service.resolve_next_stage(db, intake, medical.id).id == closing.id


def test_next_stage_id_overrides_sort_order(db, medical):
    closing = _stage(db, "closing", 3)
    _stage(db, "review", 2)
    intake = _stage(db, "intake", 1, next_stage_id=closing.id)

    assert workflow_stage_service.resolve_next_stage(db, intake, medical.id).id == closing.id


def test_explicit_stage_overrides_next_stage_id(db, medical):
    closing = _stage(db, "closing", 3)
    review = _stage(db, "review", 2)
    intake = _stage(db, "intake", 1, next_stage_id=closing.id)

    resolved = workflow_stage_service.resolve_next_stage(
        db, intake, medical.id, explicit_next_stage_id=review.id
    )
    assert resolved.id == review.id


def test_explicit_inactive_stage_not_found(db, medical):
    intake = _stage(db, "intake", 1)
    retired = _stage(db, "retired", 2, is_active=False)

    with pytest.raises(NotFoundError):
        workflow_stage_service.resolve_next_stage(
            db, intake, medical.id, explicit_next_stage_id=retired.id
        )


def test_last_stage_has_no_successor(db, medical):
    _stage(db, "intake", 1)
    closing = _stage(db, "closing", 2)

    assert workflow_stage_service.resolve_next_stage(db, closing, medical.id) is None


def test_successor_prefers_type_scoped_stage(db, medical):
    intake = _stage(db, "intake", 1)
    _stage(db, "global_review", 2)
    scoped = _stage(db, "medical_review", 2, case_type_id=medical.id)

    assert workflow_stage_service.resolve_next_stage(db, intake, medical.id).id == scoped.id


# =============================================================================
# CRUD
# =============================================================================


def test_create_stage_appends_sort_order(db):
    _stage(db, "intake", 4)
    stage = workflow_stage_service.create_stage(db, "Review", "Review")

    assert stage.stage_key == "review"
    assert stage.sort_order == 5
    assert stage.first_status == "submitted_to_review"


def test_create_stage_rejects_duplicate_key_in_scope(db, medical):
    _stage(db, "intake", 1)

    with pytest.raises(ConflictError):
        workflow_stage_service.create_stage(db, "intake", "Intake again")

    # Same key under a case type is a different scope
    scoped = workflow_stage_service.create_stage(db, "intake", "Intake", case_type_id=medical.id)
    assert scoped.case_type_id == medical.id


def test_create_stage_rejects_unknown_sla_unit(db):
    with pytest.raises(ValidationError):
        workflow_stage_service.create_stage(db, "intake", "Intake", sla_value=2, sla_unit="fortnights")


def test_stage_cannot_be_its_own_successor(db):
    intake = _stage(db, "intake", 1)

    with pytest.raises(ValidationError):
        workflow_stage_service.update_stage(db, intake, {"next_stage_id": intake.id})


def test_deactivate_blocked_while_cases_on_stage(db, make_case):
    case = make_case()

    with pytest.raises(ConflictError):
        workflow_stage_service.deactivate_stage(db, case.current_stage)


def test_reorder_assigns_sequential_sort_order(db):
    a = _stage(db, "a", 1)
    b = _stage(db, "b", 2)
    c = _stage(db, "c", 3)

    workflow_stage_service.reorder_stages(db, [c.id, a.id, b.id])

    assert (c.sort_order, a.sort_order, b.sort_order) == (1, 2, 3)


# =============================================================================
# Stage Grants
# =============================================================================


def test_super_admin_passes_every_stage_check(db, seed, super_admin):
    stage = workflow_stage_service.first_stage(db, None)
    assert workflow_stage_service.check_stage_permission(db, super_admin, stage, "approve")


def test_role_grant_allows_action(db, seed, counselor):
    stage = workflow_stage_service.first_stage(db, None)
    role = permission_service.get_role_by_name(db, Role.COUNSELOR.value)
    db.add(WorkflowStageRole(workflow_stage_id=stage.id, role_id=role.id, can_approve=True))
    db.commit()

    assert workflow_stage_service.check_stage_permission(db, counselor, stage, "approve")
    assert not workflow_stage_service.check_stage_permission(db, counselor, stage, "reject")


def test_user_grant_allows_action_and_update_alias(db, seed, counselor):
    stage = workflow_stage_service.first_stage(db, None)
    db.add(WorkflowStageUser(workflow_stage_id=stage.id, user_id=counselor.id, can_edit=True))
    db.commit()

    assert workflow_stage_service.check_stage_permission(db, counselor, stage, "update")
    assert not workflow_stage_service.check_stage_permission(db, counselor, stage, "approve")


def test_unknown_stage_action_denied(db, seed, super_admin):
    stage = workflow_stage_service.first_stage(db, None)
    assert not workflow_stage_service.check_stage_permission(db, super_admin, stage, "teleport")


# =============================================================================
# SLA
# =============================================================================


def test_sla_without_configuration_is_on_time():
    stage = WorkflowStage(stage_key="intake", stage_name="Intake", sort_order=1)
    status = workflow_stage_service.compute_sla_status(stage, datetime.now(timezone.utc))

    assert status["status"] == "on_time"
    assert status["sla_hours"] is None


def test_sla_breached_reports_overdue_hours():
    stage = WorkflowStage(
        stage_key="intake", stage_name="Intake", sort_order=1, sla_value=1, sla_unit=SlaUnit.DAYS.value
    )
    now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

    status = workflow_stage_service.compute_sla_status(stage, now - timedelta(hours=30), now=now)

    assert status["status"] == "breached"
    assert status["hours_overdue"] == 6.0
    assert status["hours_remaining"] == 0.0


def test_sla_warning_threshold():
    stage = WorkflowStage(
        stage_key="intake",
        stage_name="Intake",
        sort_order=1,
        sla_value=48,
        sla_unit=SlaUnit.HOURS.value,
        sla_warning_value=1,
        sla_warning_unit=SlaUnit.DAYS.value,
    )
    now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

    status = workflow_stage_service.compute_sla_status(stage, now - timedelta(hours=30), now=now)

    assert status["status"] == "warning"
    assert status["hours_remaining"] == 18.0
    assert status["warning_hours"] == 24.0


def test_sla_accepts_naive_entered_at():
    stage = WorkflowStage(
        stage_key="intake", stage_name="Intake", sort_order=1, sla_value=2, sla_unit=SlaUnit.HOURS.value
    )
    now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

    status = workflow_stage_service.compute_sla_status(stage, datetime(2024, 3, 10, 11, 0), now=now)

    assert status["status"] == "on_time"
    assert status["hours_elapsed"] == 1.0


def test_sla_business_days_skip_weekends():
    stage = WorkflowStage(
        stage_key="intake",
        stage_name="Intake",
        sort_order=1,
        sla_value=2,
        sla_unit=SlaUnit.BUSINESS_DAYS.value,
    )
    # Friday 00:00 to Monday 00:00: one working day
    entered = datetime(2024, 1, 5, tzinfo=timezone.utc)
    now = datetime(2024, 1, 8, tzinfo=timezone.utc)

    status = workflow_stage_service.compute_sla_status(stage, entered, now=now)

    assert status["hours_elapsed"] == 8.0
    assert status["sla_hours"] == 16.0
    assert status["status"] == "on_time"
