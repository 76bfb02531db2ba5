from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class AuditLogEntryRead(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    status: Optional[int] = None
    details: Optional[dict] = None
    actor_user_id: Optional[str] = None
    occurred_at: datetime

    class Config:
        from_attributes = True


class ActivityLogEntryRead(BaseModel):
    id: str
    user_id: str
    module: str
    action: str
    data: Optional[Any] = None
    occurred_at: datetime

    class Config:
        from_attributes = True
