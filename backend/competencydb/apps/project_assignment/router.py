from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from competencydb.database import get_write_db
from competencydb.operations import run_operation, to_response
from competencydb.security import get_current_active_user
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts.models import PermissionAction, PermissionModule
from competencydb.apps.validation.schemas import AssigneeRead

from . import schemas, services


router = APIRouter(prefix="/par", tags=["project_assignment_request"])

PAR_MODULE = PermissionModule.PROJECT_ASSIGNMENT_REQUEST


def _par_read(par) -> dict:
    return schemas.PARRead.model_validate(par).model_dump()


@router.get("")
def list_pars(
    status: Optional[int] = None,
    assigned_to: Optional[str] = None,
    competency_id: Optional[str] = None,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.list_pars(db, status=status, assigned_to=assigned_to, competency_id=competency_id),
        actor_user_id=current_user.id,
        module=PAR_MODULE,
        action=PermissionAction.LIST,
        serialize=lambda rows: [_par_read(r) for r in rows],
    )
    return to_response(result)


@router.post("")
def create_par(
    payload: schemas.PARCreate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.create_par(db, **payload.model_dump()),
        actor_user_id=current_user.id,
        module=PAR_MODULE,
        action=PermissionAction.ADD,
        activity_data=lambda par: {"par_id": par.par_id, **payload.model_dump()},
        serialize=_par_read,
    )
    return to_response(result)


@router.get("/assignees")
def list_par_assignees(
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.assignable_users(db),
        actor_user_id=current_user.id,
        module=PAR_MODULE,
        action=PermissionAction.LIST,
        serialize=lambda users: [AssigneeRead.model_validate(u).model_dump() for u in users],
    )
    return to_response(result)


@router.get("/by-par-id/{par_id}")
def get_par_by_par_id(
    par_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.get_par_by_par_id(db, par_id),
        actor_user_id=current_user.id,
        module=PAR_MODULE,
        action=PermissionAction.LIST,
        serialize=_par_read,
    )
    return to_response(result)


@router.get("/{par_pk}")
def get_par(
    par_pk: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.get_par(db, par_pk),
        actor_user_id=current_user.id,
        module=PAR_MODULE,
        action=PermissionAction.LIST,
        serialize=_par_read,
    )
    return to_response(result)


@router.patch("/{par_pk}")
def update_par(
    par_pk: str,
    payload: schemas.PARUpdate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    changes = payload.model_dump(exclude_unset=True)
    result = run_operation(
        db,
        lambda: services.update_par(db, par_pk=par_pk, changes=changes),
        actor_user_id=current_user.id,
        module=PAR_MODULE,
        action=PermissionAction.EDIT,
        activity_data=lambda par: services.edit_activity(par, changes),
        serialize=_par_read,
    )
    return to_response(result)
