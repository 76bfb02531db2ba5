from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

ACTIVITY_ACTIONS = {"add", "edit", "delete"}


# ---------------------------------------------------------------------------
# Status history (VPA / VSR)
# ---------------------------------------------------------------------------


def append_entry(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    status: Optional[int],
    actor_user_id: Optional[str],
    details: Optional[dict] = None,
) -> models.AuditLogEntry:
    """
    Append one status-history row. Failures propagate so the enclosing
    workflow transaction rolls back with them.
    """
    entry = models.AuditLogEntry(
        entity_type=entity_type,
        entity_id=entity_id,
        status=int(status) if status is not None else None,
        details=jsonable_encoder(details) if details is not None else None,
        actor_user_id=actor_user_id,
    )
    db.add(entry)
    db.flush()
    return entry


def list_entries(db: Session, *, entity_type: str, entity_id: str) -> List[models.AuditLogEntry]:
    return (
        db.query(models.AuditLogEntry)
        .filter(
            models.AuditLogEntry.entity_type == entity_type,
            models.AuditLogEntry.entity_id == entity_id,
        )
        .order_by(models.AuditLogEntry.occurred_at.asc(), models.AuditLogEntry.id.asc())
        .all()
    )


def purge_entity_log(db: Session, *, entity_type: str, entity_id: str) -> int:
    """Remove the history of a record that is itself being deleted."""
    deleted = (
        db.query(models.AuditLogEntry)
        .filter(
            models.AuditLogEntry.entity_type == entity_type,
            models.AuditLogEntry.entity_id == entity_id,
        )
        .delete(synchronize_session=False)
    )
    return int(deleted or 0)


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


def record_activity(
    db: Session,
    *,
    user_id: str,
    module: str,
    action: str,
    data: Any = None,
) -> models.ActivityLogEntry:
    if action not in ACTIVITY_ACTIONS:
        raise ValueError(f"Unsupported activity action {action!r}")
    entry = models.ActivityLogEntry(
        user_id=user_id,
        module=module,
        action=action,
        data=jsonable_encoder(data),
    )
    db.add(entry)
    db.flush()
    return entry


def list_activity(
    db: Session,
    *,
    module: Optional[str] = None,
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 200,
) -> List[models.ActivityLogEntry]:
    query = db.query(models.ActivityLogEntry)
    if module:
        query = query.filter(models.ActivityLogEntry.module == module)
    if user_id:
        query = query.filter(models.ActivityLogEntry.user_id == user_id)
    if start:
        query = query.filter(models.ActivityLogEntry.occurred_at >= start)
    if end:
        query = query.filter(models.ActivityLogEntry.occurred_at <= end)
    return query.order_by(models.ActivityLogEntry.occurred_at.desc()).limit(limit).all()
