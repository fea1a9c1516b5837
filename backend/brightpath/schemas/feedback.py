from datetime import datetime

from pydantic import BaseModel, Field, field_validator

LIKERT_KEYS = ("pacing", "workload", "variety", "engagement", "manageability")


class FeedbackCreate(BaseModel):
    star_rating: int = Field(ge=1, le=5)
    likert_ratings: dict[str, int] = Field(default_factory=dict)
    comments: str | None = None
    time_shifted: bool = False
    reordered: bool = False
    removed: bool = False

    @field_validator("likert_ratings")
    @classmethod
    def _check_likert(cls, value: dict[str, int]) -> dict[str, int]:
        unknown = set(value) - set(LIKERT_KEYS)
        if unknown:
            raise ValueError(f"Unknown Likert keys: {sorted(unknown)}")
        for key, rating in value.items():
            if not 1 <= rating <= 5:
                raise ValueError(f"Likert rating for {key} must be between 1 and 5")
        return value


class FeedbackPublic(BaseModel):
    id: int
    schedule_id: int
    star_rating: int
    likert_ratings: dict[str, int]
    comments: str | None
    time_shifted: bool
    reordered: bool
    removed: bool
    score: float | None
    created_at: datetime

    class Config:
        from_attributes = True
