# backend/competencydb/apps/training_requests/models.py

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
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow
from ..accounts import models as account_models  # noqa: F401  (User mapper)
from ..competencies import models as competency_models  # noqa: F401  (CompetencyLevel mapper)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class TrainingRequestStatus(enum.IntEnum):
    NOT_STARTED = 0
    LOOKING_FOR_TRAINER = 1
    IN_QUEUE = 2
    NO_BATCH_MATCH = 3
    IN_PROGRESS = 4
    SESSIONS_COMPLETED = 5
    ON_HOLD = 6
    DROP_OFF = 7
    TRAINING_COMPLETED = 8


class OnHoldBy(enum.IntEnum):
    LEARNER = 0
    TRAINER = 1


# ---------------------------------------------------------------------------
# TRAINING REQUEST
# ---------------------------------------------------------------------------


class TrainingRequest(Base):
    """
    A learner's claim on one competency level.

    `status` is the source of truth for where the learner is in the
    pipeline. Batches and validation records move it; nothing deletes it.
    """

    __tablename__ = "training_requests"
    __table_args__ = (
        UniqueConstraint("tr_id", name="uq_training_requests_tr_id"),
        UniqueConstraint(
            "learner_user_id",
            "competency_level_id",
            name="uq_training_requests_learner_level",
        ),
        Index("ix_training_requests_level_status", "competency_level_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    tr_id = Column(String(32), nullable=False)
    requested_date = Column(Date, nullable=False)

    learner_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    training_batch_id = Column(
        String(36),
        ForeignKey("training_batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status = Column(Integer, nullable=False, default=TrainingRequestStatus.NOT_STARTED)
    on_hold_by = Column(Integer, nullable=True)
    on_hold_reason = Column(Text, nullable=True)
    drop_off_reason = Column(Text, nullable=True)

    is_blocked = Column(Boolean, nullable=False, default=False)
    blocked_reason = Column(Text, nullable=True)
    expected_unblocked_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)
    definite_answer = Column(Boolean, nullable=True)
    no_follow_up_date = Column(Date, nullable=True)
    follow_up_date = Column(Date, nullable=True)
    in_queue_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")
    competency_level = relationship("CompetencyLevel", lazy="joined")

    def __repr__(self) -> str:
        return f"<TrainingRequest tr_id={self.tr_id} status={self.status}>"
