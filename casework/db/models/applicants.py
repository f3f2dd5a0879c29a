"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casework.db.base import Base
from casework.db.models.organizations import Jamaat, Jamiat


class Applicant(Base):
    """
    Demographic record keyed by ITS number.

    `its_lookup_failed` is set when the ITS API reports the number as unknown,
    so bulk refreshes skip it instead of retrying forever.
    """

    __tablename__ = "applicants"
    __table_args__ = (Index("idx_applicants_name", "last_name", "first_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    its_number: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(10), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qualification: Mapped[str | None] = mapped_column(String(255), nullable=True)
    idara: Mapped[str | None] = mapped_column(String(255), nullable=True)
    jamiat_id: Mapped[int | None] = mapped_column(
        ForeignKey("jamiat.id", ondelete="SET NULL"), nullable=True
    )
    jamaat_id: Mapped[int | None] = mapped_column(
        ForeignKey("jamaat.id", ondelete="SET NULL"), nullable=True
    )
    photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    its_lookup_failed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    its_synced_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    jamiat: Mapped[Jamiat | None] = relationship()
    jamaat: Mapped[Jamaat | None] = relationship()

    @property
    def display_name(self) -> str:
        return self.full_name or f"{self.first_name} {self.last_name}".strip()
