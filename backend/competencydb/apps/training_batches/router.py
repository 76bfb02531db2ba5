from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from competencydb.database import get_write_db
from competencydb.operations import run_operation, to_response
from competencydb.security import get_current_active_user
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts.models import PermissionAction, PermissionModule
from competencydb.apps.training_requests.schemas import TrainingRequestRead

from . import schemas, services


router = APIRouter(prefix="/training-batches", tags=["training_batch"])

MODULE = PermissionModule.TRAINING_BATCH


def _read(batch) -> dict:
    return schemas.TrainingBatchRead.model_validate(batch).model_dump()


def _run(db, fn, current_user, action, *, activity_data=None, serialize=_read):
    result = run_operation(
        db,
        fn,
        actor_user_id=current_user.id,
        module=MODULE,
        action=action,
        activity_data=activity_data,
        serialize=serialize,
    )
    return to_response(result)


# ---------------------------------------------------------------------------
# READS
# ---------------------------------------------------------------------------


@router.get("")
def list_batches(
    competency_level_id: Optional[str] = None,
    trainer_user_id: Optional[str] = None,
    finished: Optional[bool] = None,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.list_batches(
            db,
            competency_level_id=competency_level_id,
            trainer_user_id=trainer_user_id,
            finished=finished,
        ),
        current_user,
        PermissionAction.LIST,
        serialize=lambda rows: [_read(r) for r in rows],
    )


@router.get("/available-learners")
def available_learners(
    competency_level_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.available_learners(db, competency_level_id=competency_level_id),
        current_user,
        PermissionAction.LIST,
        serialize=lambda rows: [TrainingRequestRead.model_validate(r).model_dump() for r in rows],
    )


@router.get("/next-name")
def next_batch_name(
    competency_level_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.next_batch_number(db, competency_level_id),
        current_user,
        PermissionAction.LIST,
        serialize=lambda number: {"batch_name": f"Batch {number}"},
    )


@router.get("/{batch_id}")
def get_batch(
    batch_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(db, lambda: services.get_batch(db, batch_id), current_user, PermissionAction.LIST)


@router.get("/{batch_id}/attendance")
def attendance_matrix(
    batch_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.attendance_matrix(db, services.get_batch(db, batch_id)),
        current_user,
        PermissionAction.LIST,
        serialize=None,
    )


@router.get("/{batch_id}/homework")
def homework_matrix(
    batch_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.homework_matrix(db, services.get_batch(db, batch_id)),
        current_user,
        PermissionAction.LIST,
        serialize=None,
    )


# ---------------------------------------------------------------------------
# MUTATIONS
# ---------------------------------------------------------------------------


@router.post("")
def create_batch(
    payload: schemas.TrainingBatchCreate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.create_batch(db, **payload.model_dump()),
        current_user,
        PermissionAction.ADD,
        activity_data=lambda batch: {"batch_id": batch.id, **payload.model_dump()},
    )


@router.patch("/{batch_id}")
def update_batch(
    batch_id: str,
    payload: schemas.TrainingBatchUpdate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    changes = payload.model_dump(exclude_unset=True)
    learner_ids = changes.pop("learner_ids", None)
    session_dates = changes.pop("session_dates", None)
    return _run(
        db,
        lambda: services.update_batch(
            db,
            batch_id=batch_id,
            changes=changes,
            learner_ids=learner_ids,
            session_dates=session_dates,
        ),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda batch: {"batch_id": batch.id, **payload.model_dump(exclude_unset=True)},
    )


@router.delete("/{batch_id}")
def delete_batch(
    batch_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.delete_batch(db, batch_id=batch_id),
        current_user,
        PermissionAction.DELETE,
        activity_data=lambda _: {"batch_id": batch_id},
        serialize=lambda _: {"batch_id": batch_id},
    )


@router.delete("/{batch_id}/learners/{learner_user_id}")
def remove_learner(
    batch_id: str,
    learner_user_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.remove_learner(db, batch_id=batch_id, learner_user_id=learner_user_id),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda _: {"batch_id": batch_id, "learner_user_id": learner_user_id, "removed": True},
    )


@router.post("/{batch_id}/learners/{learner_user_id}/drop-off")
def drop_off_learner(
    batch_id: str,
    learner_user_id: str,
    payload: schemas.DropOffRequest,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.drop_off_learner(
            db, batch_id=batch_id, learner_user_id=learner_user_id, reason=payload.reason
        ),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda _: {
            "batch_id": batch_id,
            "learner_user_id": learner_user_id,
            "drop_off_reason": payload.reason,
        },
    )


@router.put("/{batch_id}/sessions/{session_number}/date")
def set_session_date(
    batch_id: str,
    session_number: int,
    payload: schemas.SessionDateUpdate,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.set_session_date(
            db, batch_id=batch_id, session_number=session_number, session_date=payload.session_date
        ),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda s: {"batch_id": batch_id, "session_number": s.session_number, "session_date": s.session_date},
        serialize=lambda s: schemas.TrainingBatchSessionRead.model_validate(s).model_dump(),
    )


@router.post("/{batch_id}/start")
def start_batch(
    batch_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.start_session_one(db, batch_id=batch_id),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda s: {"batch_id": batch_id, "session_number": 1, "session_date": s.session_date},
        serialize=lambda s: schemas.TrainingBatchSessionRead.model_validate(s).model_dump(),
    )


@router.put("/{batch_id}/sessions/{session_id}/attendance")
def record_attendance(
    batch_id: str,
    session_id: str,
    entries: List[schemas.AttendanceEntry],
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    payload = [e.model_dump() for e in entries]
    return _run(
        db,
        lambda: services.record_attendance(db, batch_id=batch_id, session_id=session_id, entries=payload),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda _: {"batch_id": batch_id, "session_id": session_id, "attendance": payload},
        serialize=lambda rows: {"updated": len(rows)},
    )


@router.put("/{batch_id}/sessions/{session_id}/homework")
def record_homework(
    batch_id: str,
    session_id: str,
    entries: List[schemas.HomeworkEntry],
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    payload = [e.model_dump() for e in entries]
    return _run(
        db,
        lambda: services.record_homework(db, batch_id=batch_id, session_id=session_id, entries=payload),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda _: {"batch_id": batch_id, "session_id": session_id, "homework": payload},
        serialize=lambda rows: {"updated": len(rows)},
    )


@router.post("/{batch_id}/finish")
def finish_batch(
    batch_id: str,
    db: Session = Depends(get_write_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return _run(
        db,
        lambda: services.finish_batch(db, batch_id=batch_id),
        current_user,
        PermissionAction.EDIT,
        activity_data=lambda batch: {"batch_id": batch.id, "batch_finish_date": batch.batch_finish_date},
    )
