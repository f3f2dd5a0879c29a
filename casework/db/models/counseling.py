"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from casework.db.base import Base


class CounselingForm(Base):
    """
    Counseling intake filled in section by section, one per case.

    Every section is a JSON object. Completing the form requires all of them
    and hands the case to welfare review; a completed form is editable again
    only while the case sits in `welfare_rejected`.
    """

    __tablename__ = "counseling_forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    personal_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    family_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    assessment: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    financial_assistance: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    economic_growth: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    declaration: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    attachments: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
