from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from competencydb import status_labels


class PARCreate(BaseModel):
    learner_user_id: str
    competency_level_id: str
    project_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)


class PARUpdate(BaseModel):
    status: Optional[int] = Field(None, ge=0, le=4)
    assigned_to: Optional[str] = None
    response_date: Optional[date] = None
    project_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None


class PARRead(BaseModel):
    id: str
    par_id: str
    requested_date: date
    learner_user_id: str
    competency_level_id: str
    status: int
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    project_name: Optional[str] = None
    description: Optional[str] = None
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field  # type: ignore[misc]
    @property
    def status_label(self) -> str:
        return status_labels.label_for("par", self.status)
