from datetime import date, datetime, time
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from brightpath.models.activity_log import ActivityEvent
from brightpath.models.schedule import ItemStatus, ItemType, ScheduleStatus


class _ItemBase(BaseModel):
    start_time: time
    end_time: time
    title: str

    @property
    def duration_minutes(self) -> int:
        return (self.end_time.hour * 60 + self.end_time.minute) - (
            self.start_time.hour * 60 + self.start_time.minute
        )


class SubjectItem(_ItemBase):
    kind: Literal["subject"] = "subject"
    subject_id: int
    is_fixed: bool = False


class CommitmentItem(_ItemBase):
    kind: Literal["commitment"] = "commitment"
    commitment_id: int | None = None


class BreakItem(_ItemBase):
    kind: Literal["break"] = "break"
    title: str = "Break"


ScheduleEntry = Annotated[
    Union[SubjectItem, CommitmentItem, BreakItem], Field(discriminator="kind")
]


class DaySchedule(BaseModel):
    day: date
    items: list[ScheduleEntry] = Field(default_factory=list)

    @property
    def subject_items(self) -> list[SubjectItem]:
        return [item for item in self.items if isinstance(item, SubjectItem)]


class GenerationParameters(BaseModel):
    block_duration: int = Field(ge=15, le=90)
    breaks_frequency: int = Field(ge=2, le=5)
    day_start_hour: Literal[8, 9, 10]


class UnscheduledSubject(BaseModel):
    subject_id: int
    name: str
    missing_sessions: int
    missing_minutes: int


class ScheduleMetadata(BaseModel):
    parameters: GenerationParameters
    unscheduled_subjects: list[UnscheduledSubject] = Field(default_factory=list)
    capacity_exceeded: bool = False
    required_minutes: int = 0
    available_minutes: int = 0
    low_confidence_clusters: list[str] = Field(default_factory=list)


class WeeklySchedule(BaseModel):
    """Generator output; stored verbatim as the schedule document."""

    child_id: int
    week_start: date
    generated_at: datetime
    generation_method: str = "greedy_rotation"
    days: list[DaySchedule]
    metadata: ScheduleMetadata

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "WeeklySchedule":
        return cls.model_validate(document)

    def day(self, value: date) -> DaySchedule | None:
        for day_schedule in self.days:
            if day_schedule.day == value:
                return day_schedule
        return None


class ScheduleItemPublic(BaseModel):
    id: int
    day: date
    position: int
    item_type: ItemType
    title: str
    start_time: time
    end_time: time
    status: ItemStatus
    subject_id: int | None
    commitment_id: int | None
    is_fixed: bool
    replaces_item_id: int | None

    class Config:
        from_attributes = True


class SchedulePublic(BaseModel):
    id: int
    child_id: int
    week_start_date: date
    version: int
    is_active: bool
    status: ScheduleStatus
    generation_method: str
    generated_at: datetime
    schedule_data: WeeklySchedule
    unscheduled_subjects: list[UnscheduledSubject]
    items: list[ScheduleItemPublic]
    warnings: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ItemCompletion(BaseModel):
    actual_minutes: int | None = Field(default=None, ge=0)
    completed_at: datetime | None = None


class ItemReschedule(BaseModel):
    day: date
    start_time: time
    end_time: time


class ActivityLogPublic(BaseModel):
    id: int
    schedule_item_id: int
    event: ActivityEvent
    new_item_id: int | None
    actual_minutes: int | None
    created_at: datetime

    class Config:
        from_attributes = True
