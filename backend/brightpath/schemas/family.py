from datetime import datetime, time

from pydantic import BaseModel, Field, model_validator

from brightpath.models.child import DayPart


class FamilyCreate(BaseModel):
    name: str


class FamilyPublic(FamilyCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class ChildBase(BaseModel):
    name: str
    age: int = Field(ge=3, le=18)
    best_learning_times: list[DayPart] = Field(default_factory=list)
    homeschool_start: time = time(hour=9)
    homeschool_end: time = time(hour=14)

    @model_validator(mode="after")
    def _check_window(self) -> "ChildBase":
        if self.homeschool_end <= self.homeschool_start:
            raise ValueError("homeschool_end must be after homeschool_start")
        return self


class ChildCreate(ChildBase):
    pass


class ChildPublic(ChildBase):
    id: int
    family_id: int
    created_at: datetime

    class Config:
        from_attributes = True
