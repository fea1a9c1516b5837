from datetime import datetime, time
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Time
from sqlalchemy.orm import relationship

from brightpath.db.base import Base

CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class DayPart(str, PyEnum):
    EARLY_MORNING = "early_morning"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class Child(Base):
    __tablename__ = "children"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(
        Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=False)
    best_learning_times = Column(JSON, nullable=False, default=list)  # list of DayPart values
    homeschool_start = Column(Time, nullable=False, default=time(hour=9))
    homeschool_end = Column(Time, nullable=False, default=time(hour=14))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    family = relationship("Family", back_populates="children")
    subjects = relationship(
        "Subject", back_populates="child", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
    commitments = relationship("Commitment", back_populates="child")
    schedules = relationship(
        "Schedule", back_populates="child", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
