"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casework.db.base import Base


class WorkflowStage(Base):
    """
    Ordered checkpoint in the case workflow.

    - Active stages for one case type (or global, case_type_id NULL) are
      totally ordered by sort_order.
    - next_stage_id, when set, overrides ordering on advance.
    - associated_statuses[0] is the status a case takes on entering the stage.
    """

    __tablename__ = "workflow_stages"
    __table_args__ = (
        Index("idx_workflow_stages_order", "case_type_id", "is_active", "sort_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stage_key: Mapped[str] = mapped_column(String(100), nullable=False)
    stage_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    case_type_id: Mapped[int | None] = mapped_column(
        ForeignKey("case_types.id", ondelete="CASCADE"), nullable=True
    )
    next_stage_id: Mapped[int | None] = mapped_column(
        ForeignKey("workflow_stages.id", ondelete="SET NULL"), nullable=True
    )
    associated_statuses: Mapped[list | None] = mapped_column(JSON, nullable=True)
    requires_comments_on_reject: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # SLA (unit is one of SlaUnit)
    sla_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sla_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    sla_warning_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sla_warning_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    role_grants: Mapped[list["WorkflowStageRole"]] = relationship(
        back_populates="stage", cascade="all, delete-orphan"
    )
    user_grants: Mapped[list["WorkflowStageUser"]] = relationship(
        back_populates="stage", cascade="all, delete-orphan"
    )

    @property
    def first_status(self) -> str:
        if self.associated_statuses:
            return self.associated_statuses[0]
        return f"submitted_to_{self.stage_key}"


class _StageGrantFlags:
    can_view: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_approve: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_reject: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_create: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class WorkflowStageRole(_StageGrantFlags, Base):
    __tablename__ = "workflow_stage_roles"
    __table_args__ = (
        UniqueConstraint("workflow_stage_id", "role_id", name="uq_stage_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workflow_stage_id: Mapped[int] = mapped_column(
        ForeignKey("workflow_stages.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[int] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )

    stage: Mapped["WorkflowStage"] = relationship(back_populates="role_grants")


class WorkflowStageUser(_StageGrantFlags, Base):
    __tablename__ = "workflow_stage_users"
    __table_args__ = (
        UniqueConstraint("workflow_stage_id", "user_id", name="uq_stage_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workflow_stage_id: Mapped[int] = mapped_column(
        ForeignKey("workflow_stages.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    stage: Mapped["WorkflowStage"] = relationship(back_populates="user_grants")
