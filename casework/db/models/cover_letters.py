"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from casework.db.base import Base


class CoverLetterForm(Base):
    """
    Cover letter prepared for welfare review, one per case.

    Sections are free-form JSON edited by the frontend. Once `is_approved`
    is set by welfare approval the form is read-only except for super admins.
    """

    __tablename__ = "cover_letter_forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    applicant_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    counsellor_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    financial_overview: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    proposed_upliftment_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    financial_assistance: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    non_financial_assistance: Mapped[str | None] = mapped_column(Text, nullable=True)
    projected_income: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    case_management_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submitted_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
