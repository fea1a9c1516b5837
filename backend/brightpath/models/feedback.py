from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Text,
)
from sqlalchemy.orm import relationship

from brightpath.db.base import Base


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(
        Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    star_rating = Column(Integer, nullable=False)
    # {"pacing": 4, "workload": 3, ...}; keys listed in schemas.feedback.LIKERT_KEYS
    likert_ratings = Column(JSON, nullable=False, default=dict)
    comments = Column(Text, nullable=True)
    time_shifted = Column(Boolean, nullable=False, default=False)
    reordered = Column(Boolean, nullable=False, default=False)
    removed = Column(Boolean, nullable=False, default=False)
    score = Column(Float, nullable=True)
    scored_by_model_id = Column(
        Integer, ForeignKey("evaluator_models.id", ondelete="SET NULL"), nullable=True
    )
    scored_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    schedule = relationship("Schedule", back_populates="feedback")
