from datetime import datetime

from pydantic import BaseModel, Field

from brightpath.models.family import FlexibilityLevel

CLUSTERS = (
    "flexibility",
    "rotation",
    "time_management",
    "long_term_scheduling",
    "prioritization",
)


class FeatureVector(BaseModel):
    """Normalized questionnaire features for one child."""

    cluster_scores: dict[str, float]
    low_confidence_clusters: list[str] = Field(default_factory=list)
    structure_level: float = Field(ge=0.0, le=1.0)
    rotation_preference: float = Field(ge=0.0, le=1.0)
    age: int
    attention_span: float = Field(ge=0.0, le=1.0)
    flexibility_level: FlexibilityLevel | None = None

    model_config = {"frozen": True}

    @property
    def is_low_confidence(self) -> bool:
        return bool(self.low_confidence_clusters)

    def as_array(self) -> list[float]:
        # Cluster scores rescaled to 0-1 in CLUSTERS order, then the scalars.
        values = [(self.cluster_scores[name] - 1) / 4 for name in CLUSTERS]
        values.extend(
            [
                self.structure_level,
                self.rotation_preference,
                min(self.age, 18) / 18,
                self.attention_span,
            ]
        )
        return values


class PreferencesSubmission(BaseModel):
    flexibility_level: FlexibilityLevel = FlexibilityLevel.BALANCED
    planning_approach: str | None = None
    responses: dict[str, int | str] = Field(default_factory=dict)


class PreferencesPublic(BaseModel):
    id: int
    family_id: int
    flexibility_level: FlexibilityLevel
    planning_approach: str | None
    philosophy_scores: dict[str, float]
    activity_preferences: dict[str, float]
    raw_responses: dict[str, int | str]
    is_current: bool
    submitted_at: datetime

    class Config:
        from_attributes = True
