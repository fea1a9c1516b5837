from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, text

from brightpath.db.base import Base


class EvaluatorModel(Base):
    __tablename__ = "evaluator_models"
    __table_args__ = (
        Index(
            "uq_evaluator_models_one_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    version = Column(Integer, nullable=False, unique=True)
    # {"feature_names": [...], "coefficients": [...], "intercept": float}
    parameters = Column(JSON, nullable=False)
    generator_parameters = Column(JSON, nullable=False, default=dict)
    feature_importance = Column(JSON, nullable=False, default=dict)
    metrics = Column(JSON, nullable=False, default=dict)
    training_samples = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    activated_at = Column(DateTime, nullable=True)
