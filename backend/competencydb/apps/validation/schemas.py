from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from competencydb import status_labels


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


class VPACreate(BaseModel):
    vpa_id: str = Field(..., min_length=1, max_length=32)
    learner_user_id: str
    competency_level_id: str
    tr_id: Optional[str] = None
    project_details: Optional[str] = None


class VPAUpdate(BaseModel):
    status: Optional[int] = Field(None, ge=0, le=3)
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    project_details: Optional[str] = None
    rejection_reason: Optional[str] = None


class VPARead(BaseModel):
    id: str
    vpa_id: str
    tr_id: Optional[str] = None
    learner_user_id: str
    competency_level_id: str
    status: int
    assigned_to: Optional[str] = None
    requested_date: date
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    project_details: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field  # type: ignore[misc]
    @property
    def status_label(self) -> str:
        return status_labels.label_for("vpa", self.status)


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


class VSRCreate(BaseModel):
    learner_user_id: str
    competency_level_id: str
    tr_id: Optional[str] = None
    description: Optional[str] = None


class VSRUpdate(BaseModel):
    status: Optional[int] = Field(None, ge=0, le=4)
    validator_ops: Optional[str] = None
    validator_trainer: Optional[str] = None
    assigned_to: Optional[str] = None
    scheduled_date: Optional[date] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    follow_up_date: Optional[date] = None
    description: Optional[str] = None


class VSRRead(BaseModel):
    id: str
    vsr_id: str
    tr_id: Optional[str] = None
    learner_user_id: str
    competency_level_id: str
    requested_date: date
    description: Optional[str] = None
    status: int
    validator_ops: Optional[str] = None
    validator_trainer: Optional[str] = None
    assigned_to: Optional[str] = None
    scheduled_date: Optional[date] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
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
        return status_labels.label_for("vsr", self.status)


class AssigneeRead(BaseModel):
    id: str
    name: Optional[str] = None
    email: str

    class Config:
        from_attributes = True
