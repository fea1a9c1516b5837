from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Time,
)
from sqlalchemy.orm import relationship

from brightpath.db.base import Base


class Recurrence(str, PyEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ONE_TIME = "one_time"


class Commitment(Base):
    """An externally fixed block. ``child_id`` is NULL for family-wide ones."""

    __tablename__ = "commitments"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(
        Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True
    )
    child_id = Column(
        Integer, ForeignKey("children.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name = Column(String(255), nullable=False)
    recurrence = Column(SQLEnum(Recurrence), nullable=False, default=Recurrence.WEEKLY)
    days_of_week = Column(JSON, nullable=True)  # 0 = Monday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    starts_on = Column(Date, nullable=True)
    ends_on = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    family = relationship("Family", back_populates="commitments")
    child = relationship("Child", back_populates="commitments")
