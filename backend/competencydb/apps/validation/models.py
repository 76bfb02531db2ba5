# backend/competencydb/apps/validation/models.py

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow
from ..accounts import models as account_models  # noqa: F401  (User mapper)
from ..competencies import models as competency_models  # noqa: F401  (CompetencyLevel mapper)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class VPAStatus(enum.IntEnum):
    PENDING = 0
    APPROVED = 1
    REJECTED = 2
    RESUBMIT_FOR_REVALIDATION = 3


class VSRStatus(enum.IntEnum):
    PENDING_VALIDATION = 0
    PENDING_REVALIDATION = 1
    VALIDATION_SCHEDULED = 2
    FAIL = 3
    PASS = 4


# While a VSR sits in one of these, its response due date tracks the
# requested date; afterwards the stored value is kept as-is.
VSR_OPEN_STATUSES = frozenset(
    {
        VSRStatus.PENDING_VALIDATION,
        VSRStatus.PENDING_REVALIDATION,
        VSRStatus.VALIDATION_SCHEDULED,
    }
)


# ---------------------------------------------------------------------------
# VALIDATION PROJECT APPROVAL
# ---------------------------------------------------------------------------


class ValidationProjectApproval(Base):
    __tablename__ = "validation_project_approvals"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    vpa_id = Column(String(32), nullable=False, unique=True, index=True)
    tr_id = Column(String(32), nullable=True, index=True)

    learner_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(Integer, nullable=False, default=VPAStatus.PENDING)
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    requested_date = Column(Date, nullable=False)
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)
    project_details = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<ValidationProjectApproval vpa_id={self.vpa_id} status={self.status}>"


# ---------------------------------------------------------------------------
# VALIDATION SCHEDULE REQUEST
# ---------------------------------------------------------------------------


class ValidationScheduleRequest(Base):
    """
    Scheduling and outcome of one validation for a training request.

    `vsr_id` comes from the "vsr" sequence; at most one VSR exists per tr_id,
    later approvals reset it instead of creating another.
    """

    __tablename__ = "validation_schedule_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    vsr_id = Column(String(32), nullable=False, unique=True, index=True)
    tr_id = Column(String(32), nullable=True, index=True)

    learner_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    requested_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Integer, nullable=False, default=VSRStatus.PENDING_VALIDATION)

    validator_ops = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    validator_trainer = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    scheduled_date = Column(Date, nullable=True)
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)
    definite_answer = Column(Boolean, nullable=True)
    no_follow_up_date = Column(Date, nullable=True)
    follow_up_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<ValidationScheduleRequest vsr_id={self.vsr_id} status={self.status}>"
