from datetime import datetime, time
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, JSON, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brightpath.db.base import Base


class SubjectFrequency(str, PyEnum):
    DAILY = "daily"
    TWO_TO_THREE_PER_WEEK = "2-3_per_week"
    WEEKLY = "weekly"
    OCCASIONAL = "occasional"


class ParentInvolvement(str, PyEnum):
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    FULL = "full"


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    child_id: Mapped[int] = mapped_column(
        ForeignKey("children.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_core: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    session_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    frequency: Mapped[SubjectFrequency] = mapped_column(
        SQLEnum(SubjectFrequency),
        nullable=False,
        default=SubjectFrequency.DAILY,
    )
    parent_involvement: Mapped[ParentInvolvement] = mapped_column(
        SQLEnum(ParentInvolvement), nullable=False, default=ParentInvolvement.MINIMAL
    )
    fixed_start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    fixed_days: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)  # 0 = Monday
    interest_level: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    child = relationship("Child", back_populates="subjects")
