from datetime import date, time

from pydantic import BaseModel, Field, model_validator

from brightpath.models.commitment import Recurrence


class CommitmentBase(BaseModel):
    name: str
    child_id: int | None = None
    recurrence: Recurrence = Recurrence.WEEKLY
    days_of_week: list[int] | None = Field(default=None)
    start_time: time
    end_time: time
    starts_on: date | None = None
    ends_on: date | None = None

    @model_validator(mode="after")
    def _check_times(self) -> "CommitmentBase":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.days_of_week and any(day < 0 or day > 6 for day in self.days_of_week):
            raise ValueError("days_of_week must be between 0 (Monday) and 6 (Sunday)")
        if self.recurrence in (Recurrence.ONE_TIME, Recurrence.MONTHLY) and not self.starts_on:
            raise ValueError(f"{self.recurrence.value} commitments need starts_on")
        return self


class CommitmentCreate(CommitmentBase):
    pass


class CommitmentUpdate(BaseModel):
    name: str | None = None
    recurrence: Recurrence | None = None
    days_of_week: list[int] | None = None
    start_time: time | None = None
    end_time: time | None = None
    starts_on: date | None = None
    ends_on: date | None = None


class CommitmentPublic(CommitmentBase):
    id: int
    family_id: int

    class Config:
        from_attributes = True
