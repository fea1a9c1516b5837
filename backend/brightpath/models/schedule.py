from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from brightpath.db.base import Base

CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class ScheduleStatus(str, PyEnum):
    GENERATED = "generated"
    ACTIVE = "active"
    SUPERSEDED = "superseded"


class ItemType(str, PyEnum):
    SUBJECT = "subject"
    COMMITMENT = "commitment"
    BREAK = "break"


class ItemStatus(str, PyEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    SUPERSEDED = "superseded"


class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint(
            "child_id", "week_start_date", "version", name="uq_schedules_child_week_version"
        ),
        # At most one active schedule per child and week.
        Index(
            "uq_schedules_one_active_per_week",
            "child_id",
            "week_start_date",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    child_id = Column(
        Integer, ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True
    )
    week_start_date = Column(Date, nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=False)
    status = Column(SQLEnum(ScheduleStatus), nullable=False, default=ScheduleStatus.GENERATED)
    generation_method = Column(String(64), nullable=False, default="greedy_rotation")
    schedule_data = Column(JSON, nullable=False)
    unscheduled_subjects = Column(JSON, nullable=False, default=list)
    evaluator_model_id = Column(
        Integer, ForeignKey("evaluator_models.id", ondelete="SET NULL"), nullable=True
    )
    generated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    superseded_at = Column(DateTime, nullable=True)

    child = relationship("Child", back_populates="schedules")
    items = relationship(
        "ScheduleItem",
        back_populates="schedule",
        cascade=CASCADE_ALL_DELETE_ORPHAN,
        order_by=lambda: [ScheduleItem.day, ScheduleItem.start_time, ScheduleItem.position],
    )
    feedback = relationship(
        "Feedback", back_populates="schedule", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
    activity_logs = relationship(
        "ActivityLog", back_populates="schedule", cascade=CASCADE_ALL_DELETE_ORPHAN
    )


class ScheduleItem(Base):
    __tablename__ = "schedule_items"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(
        Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day = Column(Date, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    item_type = Column(SQLEnum(ItemType), nullable=False)
    title = Column(String(255), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(SQLEnum(ItemStatus), nullable=False, default=ItemStatus.PENDING)
    subject_id = Column(
        Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True
    )
    commitment_id = Column(
        Integer, ForeignKey("commitments.id", ondelete="SET NULL"), nullable=True
    )
    is_fixed = Column(Boolean, nullable=False, default=False)
    replaces_item_id = Column(
        Integer, ForeignKey("schedule_items.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    schedule = relationship("Schedule", back_populates="items")
    subject = relationship("Subject")
    commitment = relationship("Commitment")
    replaces = relationship("ScheduleItem", remote_side=[id])

    @property
    def duration_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start
