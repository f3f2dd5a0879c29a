"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casework.db.base import Base


class WelfareChecklistCategory(Base):
    __tablename__ = "welfare_checklist_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    items: Mapped[list["WelfareChecklistItem"]] = relationship(
        back_populates="category",
        order_by="WelfareChecklistItem.sort_order",
    )


class WelfareChecklistItem(Base):
    __tablename__ = "welfare_checklist_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("welfare_checklist_categories.id", ondelete="CASCADE"), nullable=False
    )
    form_section: Mapped[str] = mapped_column(String(255), nullable=False)
    checklist_detail: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_compulsory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    category: Mapped["WelfareChecklistCategory"] = relationship(back_populates="items")


class WelfareChecklistResponse(Base):
    """A reviewer's Y/N answer for one checklist item on one case."""

    __tablename__ = "welfare_checklist_responses"
    __table_args__ = (
        UniqueConstraint("case_id", "checklist_item_id", name="uq_checklist_response"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    checklist_item_id: Mapped[int] = mapped_column(
        ForeignKey("welfare_checklist_items.id", ondelete="CASCADE"), nullable=False
    )
    properly_filled: Mapped[str] = mapped_column(String(1), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    overall_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    filled_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
