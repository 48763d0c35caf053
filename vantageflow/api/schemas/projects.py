from datetime import date
from datetime import datetime

from pydantic import BaseModel
from pydantic import Field


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TaskCreate(BaseModel):
    section_name: str = Field(min_length=1, max_length=200)
    name: str = Field(min_length=1, max_length=255)
    status: str = Field(default="0%", max_length=20)
    due_date: date | None = None
    assignees: list[str] = Field(default_factory=list)


class AchievementCreate(BaseModel):
    user_name: str = Field(min_length=1, max_length=100)
    points: int = Field(ge=0)
    awarded_at: datetime
