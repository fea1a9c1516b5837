from datetime import datetime

from pydantic import BaseModel, Field


class GeneratorTuning(BaseModel):
    """Swappable generator parameter set updated by retraining."""

    rotation_shortening: float = Field(default=0.25, ge=0.0, le=0.5)
    block_scale: float = Field(default=1.0, ge=0.5, le=1.5)
    low_confidence_widen_minutes: int = Field(default=10, ge=0, le=30)
    breaks_base: int = Field(default=2, ge=2, le=5)
    breaks_age_step: int = Field(default=3, ge=1)
    breaks_shift: int = Field(default=0, ge=-2, le=2)
    # structure_level >= early -> 8:00, >= mid -> 9:00, else 10:00
    early_start_threshold: float = Field(default=0.67, ge=0.0, le=1.0)
    mid_start_threshold: float = Field(default=0.34, ge=0.0, le=1.0)


class TuningSignals(BaseModel):
    """Aggregates from the activity log used to nudge generator tuning."""

    duration_ratio: float | None = None
    mean_reschedule_shift_minutes: float | None = None
    reschedule_count: int = 0
    completion_count: int = 0


class EvaluatorModelPublic(BaseModel):
    id: int
    version: int
    feature_importance: dict[str, float]
    metrics: dict[str, float]
    generator_parameters: GeneratorTuning
    training_samples: int
    is_active: bool
    created_at: datetime
    activated_at: datetime | None

    class Config:
        from_attributes = True


class RetrainAccepted(BaseModel):
    status: str = "scheduled"
    active_model_version: int | None = None
