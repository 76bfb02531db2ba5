from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from competencydb.database import get_read_db
from competencydb.security import require_permission
from competencydb.apps.accounts import services as account_services
from competencydb.apps.accounts.models import PermissionAction, PermissionModule, User
from competencydb.errors import AuthorizationError
from competencydb.security import get_current_active_user

from . import schemas, services


router = APIRouter(tags=["audit"])

# Status history is readable by whoever can list the owning records.
_HISTORY_MODULES = {
    "vpa": PermissionModule.VALIDATION_PROJECT_APPROVAL,
    "vsr": PermissionModule.VALIDATION_SCHEDULE_REQUEST,
}


@router.get("/activity-log", response_model=List[schemas.ActivityLogEntryRead])
def list_activity(
    module: Optional[PermissionModule] = None,
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_read_db),
    current_user: User = Depends(
        require_permission(PermissionModule.ACTIVITY_LOG, PermissionAction.LIST)
    ),
):
    return services.list_activity(
        db,
        module=module.value if module else None,
        user_id=user_id,
        start=start,
        end=end,
    )


@router.get("/audit/{entity_type}/{entity_id}", response_model=List[schemas.AuditLogEntryRead])
def list_entity_history(
    entity_type: str,
    entity_id: str,
    db: Session = Depends(get_read_db),
    current_user: User = Depends(get_current_active_user),
):
    module = _HISTORY_MODULES.get(entity_type)
    if module is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown entity type")
    try:
        account_services.ensure_permission(
            db, user_id=current_user.id, module=module, action=PermissionAction.LIST
        )
    except AuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    return services.list_entries(db, entity_type=entity_type, entity_id=entity_id)
