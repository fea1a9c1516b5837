from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import relationship

from brightpath.db.base import Base

CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class FlexibilityLevel(str, PyEnum):
    VERY_FLEXIBLE = "very_flexible"
    SOMEWHAT_FLEXIBLE = "somewhat_flexible"
    BALANCED = "balanced"
    SOMEWHAT_STRUCTURED = "somewhat_structured"
    STRICTLY_STRUCTURED = "strictly_structured"


class Family(Base):
    __tablename__ = "families"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    preferences = relationship(
        "FamilyPreferences",
        back_populates="family",
        cascade=CASCADE_ALL_DELETE_ORPHAN,
        order_by="FamilyPreferences.submitted_at",
    )
    children = relationship(
        "Child", back_populates="family", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
    commitments = relationship(
        "Commitment", back_populates="family", cascade=CASCADE_ALL_DELETE_ORPHAN
    )


class FamilyPreferences(Base):
    """One questionnaire submission. Rows are never edited; a new submission
    clears ``is_current`` on the previous one."""

    __tablename__ = "family_preferences"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(
        Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True
    )
    flexibility_level = Column(
        SQLEnum(FlexibilityLevel), nullable=False, default=FlexibilityLevel.BALANCED
    )
    planning_approach = Column(String(64), nullable=True)
    philosophy_scores = Column(JSON, nullable=False, default=dict)
    activity_preferences = Column(JSON, nullable=False, default=dict)
    raw_responses = Column(JSON, nullable=False, default=dict)
    is_current = Column(Boolean, nullable=False, default=True)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    family = relationship("Family", back_populates="preferences")
