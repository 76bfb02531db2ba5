# backend/competencydb/apps/project_assignment/models.py

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow
from ..accounts import models as account_models  # noqa: F401  (User mapper)
from ..competencies import models as competency_models  # noqa: F401  (CompetencyLevel mapper)


class PARStatus(enum.IntEnum):
    NEW = 0
    PENDING_PROJECT_ASSIGNMENT = 1
    PROJECT_ASSIGNED = 2
    REJECTED_PROJECT = 3
    NO_PROJECT_MATCH = 4


class ProjectAssignmentRequest(Base):
    """
    A learner's request to be matched with a project for a competency level.

    `par_id` comes from the "par" sequence. Status changes have no side
    effects on other records; edits are recorded in the activity log only.
    """

    __tablename__ = "project_assignment_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    par_id = Column(String(32), nullable=False, unique=True, index=True)
    requested_date = Column(Date, nullable=False)

    learner_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(Integer, nullable=False, default=PARStatus.NEW)
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)
    project_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    definite_answer = Column(Boolean, nullable=True)
    no_follow_up_date = Column(Date, nullable=True)
    follow_up_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<ProjectAssignmentRequest par_id={self.par_id} status={self.status}>"
