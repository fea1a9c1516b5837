from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Time,
)
from sqlalchemy.orm import relationship

from brightpath.db.base import Base


class ActivityEvent(str, PyEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    RESCHEDULED = "rescheduled"


class ActivityLog(Base):
    """Scheduled vs. actual outcome of one item. Rows are append-only."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(
        Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    schedule_item_id = Column(
        Integer, ForeignKey("schedule_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event = Column(SQLEnum(ActivityEvent), nullable=False)
    scheduled_day = Column(Date, nullable=False)
    scheduled_start = Column(Time, nullable=False)
    scheduled_end = Column(Time, nullable=False)
    new_day = Column(Date, nullable=True)
    new_start = Column(Time, nullable=True)
    new_end = Column(Time, nullable=True)
    new_item_id = Column(
        Integer, ForeignKey("schedule_items.id", ondelete="SET NULL"), nullable=True
    )
    completed_at = Column(DateTime, nullable=True)
    actual_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    schedule = relationship("Schedule", back_populates="activity_logs")
    item = relationship("ScheduleItem", foreign_keys=[schedule_item_id])
