from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from competencydb import status_labels


class TrainingRequestCreate(BaseModel):
    learner_user_id: str
    competency_level_id: str


class TrainingRequestUpdate(BaseModel):
    """Admin edit of a training request. Only fields that are sent change."""

    status: Optional[int] = Field(None, ge=0, le=8)
    on_hold_by: Optional[int] = Field(None, ge=0, le=1, description="0=Learner, 1=Trainer")
    on_hold_reason: Optional[str] = None
    drop_off_reason: Optional[str] = None
    is_blocked: Optional[bool] = None
    blocked_reason: Optional[str] = None
    expected_unblocked_date: Optional[date] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    follow_up_date: Optional[date] = None


class TrainingRequestRead(BaseModel):
    id: str
    tr_id: str
    requested_date: date
    learner_user_id: str
    competency_level_id: str
    training_batch_id: Optional[str] = None
    status: int
    on_hold_by: Optional[int] = None
    on_hold_reason: Optional[str] = None
    drop_off_reason: Optional[str] = None
    is_blocked: bool
    blocked_reason: Optional[str] = None
    expected_unblocked_date: Optional[date] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None
    in_queue_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field  # type: ignore[misc]
    @property
    def status_label(self) -> str:
        return status_labels.label_for("training_request", self.status)
