# backend/competencydb/apps/training_batches/models.py

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow
from ..accounts import models as account_models  # noqa: F401  (User mapper)
from ..competencies import models as competency_models  # noqa: F401  (CompetencyLevel mapper)
from ..training_requests import models as training_request_models  # noqa: F401


MIN_SESSION_COUNT = 1
MAX_SESSION_COUNT = 6


class BatchState(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


# ---------------------------------------------------------------------------
# BATCH
# ---------------------------------------------------------------------------


class TrainingBatch(Base):
    """
    A trainer-led group working through a fixed number of sessions for one
    competency level.

    `current_participant` / `spot_left` are maintained by the services
    (`current_participant == len(learners)`, the two always sum to capacity).
    Once `batch_finish_date` is set the batch is read-only.
    """

    __tablename__ = "training_batches"
    __table_args__ = (
        Index("ix_training_batches_level_trainer", "competency_level_id", "trainer_user_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trainer_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_name = Column(String(128), nullable=False)

    session_count = Column(Integer, nullable=False, default=0)
    duration_hrs = Column(Numeric(5, 1), nullable=True)
    estimated_start = Column(Date, nullable=True)
    batch_start_date = Column(Date, nullable=True)
    batch_finish_date = Column(Date, nullable=True)

    capacity = Column(Integer, nullable=False, default=0)
    current_participant = Column(Integer, nullable=False, default=0)
    spot_left = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    sessions = relationship(
        "TrainingBatchSession",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="TrainingBatchSession.session_number",
    )
    learners = relationship(
        "TrainingBatchLearner",
        back_populates="batch",
        cascade="all, delete-orphan",
    )
    attendance = relationship(
        "AttendanceRecord",
        back_populates="batch",
        cascade="all, delete-orphan",
    )
    homework = relationship(
        "HomeworkRecord",
        back_populates="batch",
        cascade="all, delete-orphan",
    )
    trainer = relationship("User", foreign_keys=[trainer_user_id], lazy="joined")

    @property
    def is_finished(self) -> bool:
        return self.batch_finish_date is not None

    @property
    def state(self) -> BatchState:
        if self.batch_finish_date is not None:
            return BatchState.FINISHED
        if any(s.session_date is not None for s in self.sessions):
            return BatchState.ACTIVE
        return BatchState.DRAFT

    def __repr__(self) -> str:
        return f"<TrainingBatch id={self.id} name={self.batch_name} state={self.state.value}>"


# ---------------------------------------------------------------------------
# SESSIONS / LEARNERS
# ---------------------------------------------------------------------------


class TrainingBatchSession(Base):
    __tablename__ = "training_batch_sessions"
    __table_args__ = (
        UniqueConstraint("training_batch_id", "session_number", name="uq_training_batch_sessions_batch_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    training_batch_id = Column(
        String(36),
        ForeignKey("training_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_number = Column(Integer, nullable=False)
    session_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    batch = relationship("TrainingBatch", back_populates="sessions")


class TrainingBatchLearner(Base):
    __tablename__ = "training_batch_learners"

    training_batch_id = Column(
        String(36),
        ForeignKey("training_batches.id", ondelete="CASCADE"),
        primary_key=True,
    )
    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    training_request_id = Column(
        String(36),
        ForeignKey("training_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    batch = relationship("TrainingBatch", back_populates="learners")
    training_request = relationship("TrainingRequest", lazy="joined")


# ---------------------------------------------------------------------------
# ATTENDANCE / HOMEWORK
# ---------------------------------------------------------------------------


class AttendanceRecord(Base):
    __tablename__ = "training_batch_attendance"

    training_batch_id = Column(
        String(36),
        ForeignKey("training_batches.id", ondelete="CASCADE"),
        primary_key=True,
    )
    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    session_id = Column(
        String(36),
        ForeignKey("training_batch_sessions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    attended = Column(Boolean, nullable=False, default=False)

    batch = relationship("TrainingBatch", back_populates="attendance")


class HomeworkRecord(Base):
    __tablename__ = "training_batch_homework"

    training_batch_id = Column(
        String(36),
        ForeignKey("training_batches.id", ondelete="CASCADE"),
        primary_key=True,
    )
    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    session_id = Column(
        String(36),
        ForeignKey("training_batch_sessions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    completed = Column(Boolean, nullable=False, default=False)
    homework_url = Column(Text, nullable=True)

    batch = relationship("TrainingBatch", back_populates="homework")
