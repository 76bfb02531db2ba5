from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from competencydb.database import get_write_db
from competencydb.operations import run_operation, to_response
from competencydb.security import get_current_active_user
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts.models import PermissionAction, PermissionModule

from . import schemas, services


router = APIRouter(prefix="/training-requests", tags=["training_request"])

MODULE = PermissionModule.TRAINING_REQUEST


def _read(tr) -> dict:
    return schemas.TrainingRequestRead.model_validate(tr).model_dump()


@router.get("")
def list_training_requests(
    status: Optional[int] = None,
    competency_level_id: Optional[str] = None,
    learner_user_id: Optional[str] = None,
    training_batch_id: Optional[str] = None,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.list_training_requests(
            db,
            status=status,
            competency_level_id=competency_level_id,
            learner_user_id=learner_user_id,
            training_batch_id=training_batch_id,
        ),
        actor_user_id=current_user.id,
        module=MODULE,
        action=PermissionAction.LIST,
        serialize=lambda rows: [_read(r) for r in rows],
    )
    return to_response(result)


@router.post("")
def create_training_request(
    payload: schemas.TrainingRequestCreate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.create_training_request(
            db,
            learner_user_id=payload.learner_user_id,
            competency_level_id=payload.competency_level_id,
        ),
        actor_user_id=current_user.id,
        module=MODULE,
        action=PermissionAction.ADD,
        activity_data=lambda tr: {"tr_id": tr.tr_id, **payload.model_dump()},
        serialize=_read,
    )
    return to_response(result)


@router.get("/{request_id}")
def get_training_request(
    request_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.get_training_request(db, request_id),
        actor_user_id=current_user.id,
        module=MODULE,
        action=PermissionAction.LIST,
        serialize=_read,
    )
    return to_response(result)


@router.patch("/{request_id}")
def update_training_request(
    request_id: str,
    payload: schemas.TrainingRequestUpdate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    changes = payload.model_dump(exclude_unset=True)
    result = run_operation(
        db,
        lambda: services.update_training_request(
            db,
            tr=services.get_training_request(db, request_id),
            actor_user_id=current_user.id,
            changes=changes,
        ),
        actor_user_id=current_user.id,
        module=MODULE,
        action=PermissionAction.EDIT,
        activity_data=lambda tr: {"tr_id": tr.tr_id, **changes},
        serialize=_read,
    )
    return to_response(result)
