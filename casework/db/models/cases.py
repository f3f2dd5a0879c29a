"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casework.db.base import Base
from casework.db.models.applicants import Applicant
from casework.db.models.masters import CaseType
from casework.db.models.workflow_stages import WorkflowStage


class Case(Base):
    """
    One applicant's journey through the program.

    - status and current_workflow_stage_id change only through
      workflow_service, which appends to case_workflow_events in the same
      transaction.
    - case_number embeds the id, so it is written after the first flush.
    - version is the optimistic lock: a concurrent writer that loaded an older
      row fails with StaleDataError instead of silently overwriting.
    """

    __tablename__ = "cases"
    __table_args__ = (
        Index("idx_cases_status", "status"),
        Index("idx_cases_stage", "current_workflow_stage_id"),
        Index("idx_cases_assigned", "assigned_user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_number: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    applicant_id: Mapped[int] = mapped_column(
        ForeignKey("applicants.id", ondelete="RESTRICT"), nullable=False
    )
    case_type_id: Mapped[int] = mapped_column(
        ForeignKey("case_types.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(100), default="draft", nullable=False)
    current_workflow_stage_id: Mapped[int | None] = mapped_column(
        ForeignKey("workflow_stages.id", ondelete="SET NULL"), nullable=True
    )
    current_stage_entered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    current_executive_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    jamiat_id: Mapped[int | None] = mapped_column(
        ForeignKey("jamiat.id", ondelete="SET NULL"), nullable=True
    )
    jamaat_id: Mapped[int | None] = mapped_column(
        ForeignKey("jamaat.id", ondelete="SET NULL"), nullable=True
    )
    assigned_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_counselor_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    applicant: Mapped[Applicant] = relationship()
    case_type: Mapped[CaseType] = relationship()
    current_stage: Mapped[WorkflowStage | None] = relationship()
    workflow_events: Mapped[list["CaseWorkflowEvent"]] = relationship(
        back_populates="case",
        order_by="CaseWorkflowEvent.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class CaseWorkflowEvent(Base):
    """
    Append-only workflow ledger.

    One row per stage entry or status transition. Rows are never updated.
    """

    __tablename__ = "case_workflow_events"
    __table_args__ = (Index("idx_workflow_events_case", "case_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    stage_id: Mapped[int | None] = mapped_column(
        ForeignKey("workflow_stages.id", ondelete="SET NULL"), nullable=True
    )
    stage_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entered_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    entered_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    entered_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    case: Mapped["Case"] = relationship(back_populates="workflow_events")


class StatusHistory(Base):
    __tablename__ = "status_history"
    __table_args__ = (Index("idx_status_history_case", "case_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    to_status: Mapped[str] = mapped_column(String(100), nullable=False)
    changed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class CaseComment(Base):
    __tablename__ = "case_comments"
    __table_args__ = (Index("idx_case_comments_case", "case_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    comment_type: Mapped[str] = mapped_column(String(30), default="general", nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class CaseClosure(Base):
    __tablename__ = "case_closures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    closed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    closed_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
