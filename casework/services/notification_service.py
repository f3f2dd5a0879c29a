"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications and the stage fan-out used by the workflow
engine. Fan-out runs inside the caller's transaction and never commits.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from casework.db.enums import NotificationType
from casework.db.models import (
    Case,
    Notification,
    Role,
    User,
    UserRole,
    WorkflowStage,
    WorkflowStageRole,
    WorkflowStageUser,
)
from casework.services.errors import NotFoundError


# =============================================================================
# Stage Fan-out
# =============================================================================


def get_stage_recipients(db: Session, stage_id: int) -> list[int]:
    """
    Users entitled to view or approve a stage.

    Union of explicit per-stage user grants and users holding a role with a
    per-stage role grant (primary role or an active, non-expired assignment).
    Only active users; each user id appears once.
    """
    recipients: set[int] = set()

    user_grant_rows = (
        db.query(WorkflowStageUser.user_id)
        .join(User, User.id == WorkflowStageUser.user_id)
        .filter(
            WorkflowStageUser.workflow_stage_id == stage_id,
            or_(WorkflowStageUser.can_view.is_(True), WorkflowStageUser.can_approve.is_(True)),
            User.is_active.is_(True),
        )
        .all()
    )
    recipients.update(row.user_id for row in user_grant_rows)

    granted_roles = (
        db.query(Role.id, Role.name)
        .join(WorkflowStageRole, WorkflowStageRole.role_id == Role.id)
        .filter(
            WorkflowStageRole.workflow_stage_id == stage_id,
            or_(WorkflowStageRole.can_view.is_(True), WorkflowStageRole.can_approve.is_(True)),
            Role.is_active.is_(True),
        )
        .all()
    )
    if granted_roles:
        role_ids = [r.id for r in granted_roles]
        role_names = [r.name for r in granted_roles]
        now = datetime.now(timezone.utc)

        by_assignment = (
            db.query(UserRole.user_id)
            .join(User, User.id == UserRole.user_id)
            .filter(
                UserRole.role_id.in_(role_ids),
                UserRole.is_active.is_(True),
                or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
                User.is_active.is_(True),
            )
            .all()
        )
        recipients.update(row.user_id for row in by_assignment)

        by_primary_role = (
            db.query(User.id)
            .filter(User.role.in_(role_names), User.is_active.is_(True))
            .all()
        )
        recipients.update(row.id for row in by_primary_role)

    return sorted(recipients)


def notify_stage_entered(
    db: Session,
    case: Case,
    stage: WorkflowStage,
    new_status: str,
) -> list[int]:
    """Insert one notification per stage recipient. Caller commits."""
    user_ids = get_stage_recipients(db, stage.id)
    label = case.case_number or f"#{case.id}"
    for user_id in user_ids:
        db.add(
            Notification(
                user_id=user_id,
                case_id=case.id,
                type=NotificationType.WORKFLOW_STAGE.value,
                title=f"Case {label} moved to {stage.stage_name}",
                message=f"Case {label} is now '{new_status}' and awaits action at {stage.stage_name}.",
                is_read=False,
            )
        )
    return user_ids


def notify_users(
    db: Session,
    user_ids: list[int],
    case: Case,
    type: NotificationType,
    title: str,
    message: Optional[str] = None,
) -> list[int]:
    """Insert one notification per distinct user id. Caller commits."""
    unique_ids = sorted(set(user_ids))
    for user_id in unique_ids:
        db.add(
            Notification(
                user_id=user_id,
                case_id=case.id,
                type=type.value,
                title=title,
                message=message,
                is_read=False,
            )
        )
    return unique_ids


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: int,
    type: NotificationType,
    title: str,
    message: Optional[str] = None,
    case_id: Optional[int] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        case_id=case_id,
        type=type.value,
        title=title,
        message=message,
        is_read=False,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_notifications(
    db: Session,
    user_id: int,
    unread_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    """Get a user's notifications, newest first. Returns (items, total)."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_unread_count(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def _get_own(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
    if not notification:
        raise NotFoundError("Notification not found")
    return notification


def mark_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = _get_own(db, notification_id, user_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: int) -> int:
    """Mark all of a user's notifications read. Returns count updated."""
    updated = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).update(
        {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
        synchronize_session=False,
    )
    db.commit()
    return updated


def delete_notification(db: Session, notification_id: int, user_id: int) -> None:
    notification = _get_own(db, notification_id, user_id)
    db.delete(notification)
    db.commit()
