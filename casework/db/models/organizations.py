"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casework.db.base import Base


class Jamiat(Base):
    """
    Top-level organizational grouping.

    `jamiat_id` is the external numeric code; `id` is the internal key that
    cases and applicants reference.
    """

    __tablename__ = "jamiat"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    jamiat_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    jamaats: Mapped[list["Jamaat"]] = relationship(
        back_populates="jamiat", order_by="Jamaat.jamaat_id"
    )


class Jamaat(Base):
    """Local grouping inside a jamiat. Codes repeat across jamiats."""

    __tablename__ = "jamaat"
    __table_args__ = (
        UniqueConstraint("jamiat_id", "jamaat_id", name="uq_jamaat_code_per_jamiat"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    jamiat_id: Mapped[int] = mapped_column(
        ForeignKey("jamiat.id", ondelete="CASCADE"), nullable=False
    )
    jamaat_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    jamiat: Mapped["Jamiat"] = relationship(back_populates="jamaats")
