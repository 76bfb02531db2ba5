from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .models import MAX_SESSION_COUNT, MIN_SESSION_COUNT, BatchState


class TrainingBatchCreate(BaseModel):
    competency_level_id: str
    trainer_user_id: str
    session_count: int = Field(..., ge=MIN_SESSION_COUNT, le=MAX_SESSION_COUNT)
    capacity: int = Field(..., ge=1)
    learner_ids: List[str] = []
    session_dates: Dict[int, Optional[date]] = Field(
        default_factory=dict,
        description="Session number -> date",
    )
    batch_name: Optional[str] = None
    duration_hrs: Optional[Decimal] = Field(None, ge=0)
    estimated_start: Optional[date] = None


class TrainingBatchUpdate(BaseModel):
    """Only sent fields change. `learner_ids`, when sent, is the full new roster."""

    batch_name: Optional[str] = None
    trainer_user_id: Optional[str] = None
    session_count: Optional[int] = Field(None, ge=MIN_SESSION_COUNT, le=MAX_SESSION_COUNT)
    capacity: Optional[int] = Field(None, ge=1)
    duration_hrs: Optional[Decimal] = Field(None, ge=0)
    estimated_start: Optional[date] = None
    learner_ids: Optional[List[str]] = None
    session_dates: Optional[Dict[int, Optional[date]]] = None


class DropOffRequest(BaseModel):
    reason: Optional[str] = None


class SessionDateUpdate(BaseModel):
    session_date: Optional[date] = None


class AttendanceEntry(BaseModel):
    learner_user_id: str
    attended: bool


class HomeworkEntry(BaseModel):
    learner_user_id: str
    completed: bool
    homework_url: Optional[str] = None


class TrainingBatchSessionRead(BaseModel):
    id: str
    session_number: int
    session_date: Optional[date] = None

    class Config:
        from_attributes = True


class TrainingBatchLearnerRead(BaseModel):
    learner_user_id: str
    training_request_id: str

    class Config:
        from_attributes = True


class TrainingBatchRead(BaseModel):
    id: str
    competency_level_id: str
    trainer_user_id: str
    batch_name: str
    session_count: int
    duration_hrs: Optional[Decimal] = None
    estimated_start: Optional[date] = None
    batch_start_date: Optional[date] = None
    batch_finish_date: Optional[date] = None
    capacity: int
    current_participant: int
    spot_left: int
    state: BatchState
    sessions: List[TrainingBatchSessionRead] = []
    learners: List[TrainingBatchLearnerRead] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
