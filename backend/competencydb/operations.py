# backend/competencydb/operations.py
"""
Operation boundary for workflow calls.

Every mutating workflow operation runs through `run_operation`:

1. permission check for (actor, module, action), before any entity read;
2. the unit of work itself (services only flush, never commit);
3. an activity-log row for mutating actions;
4. commit, or full rollback on any error.

Errors never escape: callers always get an `OperationResult`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import WorkflowError
from competencydb.apps.accounts import services as account_services
from competencydb.apps.accounts.models import PermissionAction, PermissionModule
from competencydb.apps.audit import services as audit_services

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "The operation could not be completed. Please retry."


class OperationResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    kind: Optional[str] = None
    detail: List[dict] = []
    status_code: int = 200

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: WorkflowError) -> "OperationResult":
        return cls(
            success=False,
            error=exc.message,
            kind=exc.kind,
            detail=list(exc.detail),
            status_code=exc.status_code,
        )


def run_operation(
    db: Session,
    fn: Callable[[], Any],
    *,
    actor_user_id: Optional[str],
    module: PermissionModule,
    action: PermissionAction,
    activity_data: Optional[Callable[[Any], Any]] = None,
    serialize: Optional[Callable[[Any], Any]] = None,
) -> OperationResult:
    """
    Run `fn` as one atomic unit of work and wrap the outcome.

    `serialize` turns the value returned by `fn` into response data while
    the session is still open. `activity_data` builds the activity-log
    payload from the same value; list actions are not logged.
    """
    try:
        account_services.ensure_permission(
            db, user_id=actor_user_id, module=module, action=action
        )
        result = fn()
        if action != PermissionAction.LIST and actor_user_id:
            audit_services.record_activity(
                db,
                user_id=actor_user_id,
                module=PermissionModule(module).value,
                action=PermissionAction(action).value,
                data=activity_data(result) if activity_data else None,
            )
        data = serialize(result) if serialize else result
        db.commit()
    except WorkflowError as exc:
        db.rollback()
        logger.info(
            "Workflow operation rejected",
            extra={
                "permission_module": str(module),
                "action": str(action),
                "actor_user_id": actor_user_id,
                "error_kind": exc.kind,
            },
        )
        return OperationResult.fail(exc)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Workflow operation failed in storage",
            extra={"permission_module": str(module), "action": str(action), "actor_user_id": actor_user_id},
        )
        return OperationResult(
            success=False,
            error=GENERIC_FAILURE_MESSAGE,
            kind="StorageError",
            status_code=503,
        )
    except Exception:
        db.rollback()
        logger.exception(
            "Workflow operation failed unexpectedly",
            extra={"permission_module": str(module), "action": str(action), "actor_user_id": actor_user_id},
        )
        return OperationResult(
            success=False,
            error=GENERIC_FAILURE_MESSAGE,
            kind="InternalError",
            status_code=500,
        )
    return OperationResult.ok(data)


def to_response(result: OperationResult) -> JSONResponse:
    """Render an OperationResult for routers, keeping the {success, data|error} body."""
    body = {"success": result.success}
    if result.success:
        body["data"] = jsonable_encoder(result.data)
    else:
        body["error"] = result.error
        body["kind"] = result.kind
        if result.detail:
            body["detail"] = result.detail
    return JSONResponse(status_code=result.status_code, content=body)
