from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, desc

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow


class AuditLogEntry(Base):
    """
    Append-only status history for VPA and VSR records.

    One row per mutation, capturing the status and details that resulted
    from it. `entity_id` is the human id (vpa_id / vsr_id), not the row id.
    """

    __tablename__ = "audit_log_entries"
    __table_args__ = (
        Index("ix_audit_log_entries_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_entries_entity_time_desc", "entity_type", "entity_id", desc("occurred_at")),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    entity_type = Column(String(32), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    status = Column(Integer, nullable=True)
    details = Column(JSON, nullable=True)
    actor_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<AuditLogEntry id={self.id} entity={self.entity_type}:{self.entity_id} status={self.status}>"


class ActivityLogEntry(Base):
    """
    Who did what, per permission module. Written by the operation boundary.
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_module_time", "module", "occurred_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module = Column(String(64), nullable=False, index=True)
    action = Column(String(16), nullable=False)
    data = Column(JSON, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
