from datetime import datetime, time

from pydantic import BaseModel, Field

from brightpath.models.subject import ParentInvolvement, SubjectFrequency


class SubjectBase(BaseModel):
    name: str
    is_core: bool = True
    session_minutes: int | None = Field(default=None, ge=5, le=240)
    frequency: SubjectFrequency = SubjectFrequency.DAILY
    parent_involvement: ParentInvolvement = ParentInvolvement.MINIMAL
    fixed_start_time: time | None = None
    fixed_days: list[int] | None = None
    interest_level: int = Field(default=3, ge=1, le=5)
    is_active: bool = True


class SubjectCreate(SubjectBase):
    pass


class SubjectUpdate(BaseModel):
    name: str | None = None
    is_core: bool | None = None
    session_minutes: int | None = Field(default=None, ge=5, le=240)
    frequency: SubjectFrequency | None = None
    parent_involvement: ParentInvolvement | None = None
    fixed_start_time: time | None = None
    fixed_days: list[int] | None = None
    interest_level: int | None = Field(default=None, ge=1, le=5)
    is_active: bool | None = None


class SubjectPublic(SubjectBase):
    id: int
    child_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
