# backend/competencydb/apps/competencies/models.py

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow


class CompetencyStatus(enum.IntEnum):
    DRAFT = 0
    PUBLISHED = 1


class Competency(Base):
    __tablename__ = "competencies"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Integer, nullable=False, default=CompetencyStatus.DRAFT)
    relevant_links = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    levels = relationship(
        "CompetencyLevel",
        back_populates="competency",
        cascade="all, delete-orphan",
        order_by="CompetencyLevel.created_at",
    )
    trainers = relationship(
        "CompetencyTrainer",
        back_populates="competency",
        cascade="all, delete-orphan",
    )


class CompetencyLevel(Base):
    """
    A level within a competency ("Basic", "Competent", "Advanced").

    Training requests, batches and validation records all point at a level.
    """

    __tablename__ = "competency_levels"
    __table_args__ = (
        UniqueConstraint("competency_id", "name", name="uq_competency_levels_competency_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    competency_id = Column(
        String(36),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(64), nullable=False)
    training_plan_document = Column(Text, nullable=True)
    eligibility_criteria = Column(Text, nullable=True)
    verification = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    competency = relationship("Competency", back_populates="levels")


class CompetencyTrainer(Base):
    __tablename__ = "competency_trainers"

    competency_id = Column(
        String(36),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        primary_key=True,
    )
    trainer_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    competency = relationship("Competency", back_populates="trainers")
