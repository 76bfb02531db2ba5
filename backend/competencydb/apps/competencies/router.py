from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from competencydb.database import get_read_db, get_write_db
from competencydb.operations import run_operation, to_response
from competencydb.security import get_current_active_user, require_permission
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts.models import PermissionAction, PermissionModule

from . import schemas, services


router = APIRouter(prefix="/competencies", tags=["competencies"])


@router.get("", response_model=List[schemas.CompetencyRead])
def list_competencies(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(
        require_permission(PermissionModule.COMPETENCIES, PermissionAction.LIST)
    ),
):
    return services.list_competencies(db)


@router.post("")
def create_competency(
    payload: schemas.CompetencyCreate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.create_competency(db, payload),
        actor_user_id=current_user.id,
        module=PermissionModule.COMPETENCIES,
        action=PermissionAction.ADD,
        activity_data=lambda competency: {"competency_id": competency.id, **payload.model_dump()},
        serialize=lambda competency: schemas.CompetencyRead.model_validate(competency).model_dump(),
    )
    return to_response(result)
