from datetime import date, time
from typing import Literal

from pydantic import BaseModel, Field

from brightpath.models.child import DayPart
from brightpath.models.subject import ParentInvolvement, SubjectFrequency


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


class TimeInterval(BaseModel):
    """A fixed block on one concrete date."""

    day: date
    start_time: time
    end_time: time
    kind: Literal["commitment", "subject"] = "commitment"
    source_id: int | None = None
    label: str

    model_config = {"frozen": True}

    @property
    def start_minutes(self) -> int:
        return minutes_of(self.start_time)

    @property
    def end_minutes(self) -> int:
        return minutes_of(self.end_time)

    def overlaps(self, other: "TimeInterval") -> bool:
        if self.day != other.day:
            return False
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes


class SubjectSpec(BaseModel):
    subject_id: int
    name: str
    is_core: bool = True
    session_minutes: int | None = Field(default=None, gt=0)
    frequency: SubjectFrequency = SubjectFrequency.DAILY
    sessions_per_week: int = Field(ge=0)
    parent_involvement: ParentInvolvement = ParentInvolvement.MINIMAL
    interest_level: int = Field(default=3, ge=1, le=5)
    is_fixed: bool = False


class ConstraintSet(BaseModel):
    child_id: int
    week_start: date
    homeschool_start: time
    homeschool_end: time
    best_learning_times: list[DayPart] = Field(default_factory=list)
    fixed_blocks: list[TimeInterval] = Field(default_factory=list)
    subject_requirements: list[SubjectSpec] = Field(default_factory=list)

    def fixed_blocks_on(self, day: date) -> list[TimeInterval]:
        return sorted(
            (block for block in self.fixed_blocks if block.day == day),
            key=lambda block: (block.start_time, block.end_time),
        )

