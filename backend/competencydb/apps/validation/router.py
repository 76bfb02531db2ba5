from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from competencydb.database import get_write_db
from competencydb.operations import run_operation, to_response
from competencydb.security import get_current_active_user
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts.models import PermissionAction, PermissionModule
from competencydb.apps.audit.schemas import AuditLogEntryRead

from . import schemas, services


vpa_router = APIRouter(prefix="/vpa", tags=["validation_project_approval"])
vsr_router = APIRouter(prefix="/vsr", tags=["validation_schedule_request"])

VPA_MODULE = PermissionModule.VALIDATION_PROJECT_APPROVAL
VSR_MODULE = PermissionModule.VALIDATION_SCHEDULE_REQUEST


def _vpa_read(vpa) -> dict:
    return schemas.VPARead.model_validate(vpa).model_dump()


def _vsr_read(vsr) -> dict:
    return schemas.VSRRead.model_validate(vsr).model_dump()


def _history(entries) -> List[dict]:
    return [AuditLogEntryRead.model_validate(e).model_dump() for e in entries]


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


@vpa_router.get("")
def list_vpas(
    status: Optional[int] = None,
    assigned_to: Optional[str] = None,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.list_vpas(db, status=status, assigned_to=assigned_to),
        actor_user_id=current_user.id,
        module=VPA_MODULE,
        action=PermissionAction.LIST,
        serialize=lambda rows: [_vpa_read(r) for r in rows],
    )
    return to_response(result)


@vpa_router.post("")
def create_vpa(
    payload: schemas.VPACreate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.create_vpa(db, **payload.model_dump()),
        actor_user_id=current_user.id,
        module=VPA_MODULE,
        action=PermissionAction.ADD,
        activity_data=lambda vpa: {"vpa_id": vpa.vpa_id, **payload.model_dump()},
        serialize=_vpa_read,
    )
    return to_response(result)


@vpa_router.get("/{vpa_pk}")
def get_vpa(
    vpa_pk: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.get_vpa(db, vpa_pk),
        actor_user_id=current_user.id,
        module=VPA_MODULE,
        action=PermissionAction.LIST,
        serialize=_vpa_read,
    )
    return to_response(result)


@vpa_router.patch("/{vpa_pk}")
def update_vpa(
    vpa_pk: str,
    payload: schemas.VPAUpdate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    changes = payload.model_dump(exclude_unset=True)
    result = run_operation(
        db,
        lambda: services.update_vpa(db, vpa_pk=vpa_pk, actor_user_id=current_user.id, changes=changes),
        actor_user_id=current_user.id,
        module=VPA_MODULE,
        action=PermissionAction.EDIT,
        activity_data=lambda vpa: {"vpa_id": vpa.vpa_id, **changes},
        serialize=_vpa_read,
    )
    return to_response(result)


@vpa_router.get("/{vpa_pk}/history")
def vpa_history(
    vpa_pk: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.vpa_history(db, services.get_vpa(db, vpa_pk).vpa_id),
        actor_user_id=current_user.id,
        module=VPA_MODULE,
        action=PermissionAction.LIST,
        serialize=_history,
    )
    return to_response(result)


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


@vsr_router.get("")
def list_vsrs(
    status: Optional[int] = None,
    assigned_to: Optional[str] = None,
    tr_id: Optional[str] = None,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.list_vsrs(db, status=status, assigned_to=assigned_to, tr_id=tr_id),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.LIST,
        serialize=lambda rows: [_vsr_read(r) for r in rows],
    )
    return to_response(result)


@vsr_router.post("")
def create_vsr(
    payload: schemas.VSRCreate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.create_vsr(db, **payload.model_dump()),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.ADD,
        activity_data=lambda vsr: {"vsr_id": vsr.vsr_id, **payload.model_dump()},
        serialize=_vsr_read,
    )
    return to_response(result)


@vsr_router.get("/{vsr_pk}")
def get_vsr(
    vsr_pk: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.get_vsr(db, vsr_pk),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.LIST,
        serialize=_vsr_read,
    )
    return to_response(result)


@vsr_router.get("/by-vsr-id/{vsr_id}")
def get_vsr_by_vsr_id(
    vsr_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.get_vsr_by_vsr_id(db, vsr_id),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.LIST,
        serialize=_vsr_read,
    )
    return to_response(result)


@vsr_router.get("/{vsr_pk}/assignees")
def list_vsr_assignees(
    vsr_pk: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.eligible_vsr_assignees(db, services.get_vsr(db, vsr_pk)),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.LIST,
        serialize=lambda users: [schemas.AssigneeRead.model_validate(u).model_dump() for u in users],
    )
    return to_response(result)


@vsr_router.patch("/{vsr_pk}")
def update_vsr(
    vsr_pk: str,
    payload: schemas.VSRUpdate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    changes = payload.model_dump(exclude_unset=True)
    result = run_operation(
        db,
        lambda: services.update_vsr(db, vsr_pk=vsr_pk, actor_user_id=current_user.id, changes=changes),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.EDIT,
        activity_data=lambda vsr: {"vsr_id": vsr.vsr_id, **changes},
        serialize=_vsr_read,
    )
    return to_response(result)


@vsr_router.delete("/by-vsr-id/{vsr_id}")
def delete_vsr(
    vsr_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.delete_vsr(db, vsr_id=vsr_id),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.DELETE,
        activity_data=lambda vsr_id: {"vsr_id": vsr_id},
        serialize=lambda vsr_id: {"vsr_id": vsr_id},
    )
    return to_response(result)


@vsr_router.get("/{vsr_pk}/history")
def vsr_history(
    vsr_pk: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    result = run_operation(
        db,
        lambda: services.vsr_history(db, services.get_vsr(db, vsr_pk).vsr_id),
        actor_user_id=current_user.id,
        module=VSR_MODULE,
        action=PermissionAction.LIST,
        serialize=_history,
    )
    return to_response(result)
