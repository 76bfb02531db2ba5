from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from competencydb import status_labels
from competencydb.errors import (
    CapacityError,
    EligibilityError,
    ImmutableError,
    NotFoundError,
    NotReadyError,
    SequenceError,
    ValidationError,
)
from competencydb.utils.identifiers import today, to_date_only
from competencydb.apps.accounts import models as account_models
from competencydb.apps.competencies import services as competency_services
from competencydb.apps.training_requests import models as tr_models
from competencydb.apps.training_requests import services as tr_services
from competencydb.apps.training_requests.models import TrainingRequestStatus

from . import models
from .models import MAX_SESSION_COUNT, MIN_SESSION_COUNT

logger = logging.getLogger(__name__)

BATCH_NAME_PATTERN = re.compile(r"^Batch\s+(\d+)$")

EXCEED_CAPACITY_MESSAGE = "Number of learners cannot exceed capacity"
NOT_IN_QUEUE_MESSAGE = "Some learners do not have training requests in queue"
LEARNER_NOT_IN_BATCH_MESSAGE = "Learner not found in batch"
FINISHED_MESSAGE = "Training batch is finished and can no longer be changed"

# TR statuses that are past the batch stage; session bookkeeping leaves them alone.
_COMPLETED_TR_STATUSES = {
    int(TrainingRequestStatus.SESSIONS_COMPLETED),
    int(TrainingRequestStatus.TRAINING_COMPLETED),
}

_UPDATABLE_FIELDS = (
    "batch_name",
    "trainer_user_id",
    "duration_hrs",
    "estimated_start",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_batch(db: Session, batch_id: str) -> models.TrainingBatch:
    batch = db.get(models.TrainingBatch, batch_id)
    if batch is None:
        raise NotFoundError("Training batch not found")
    return batch


def _ensure_not_finished(batch: models.TrainingBatch) -> None:
    if batch.is_finished:
        raise ImmutableError(FINISHED_MESSAGE)


def _sessions(db: Session, batch_id: str) -> List[models.TrainingBatchSession]:
    return (
        db.query(models.TrainingBatchSession)
        .filter(models.TrainingBatchSession.training_batch_id == batch_id)
        .order_by(models.TrainingBatchSession.session_number.asc())
        .all()
    )


def _learner_rows(db: Session, batch_id: str) -> List[models.TrainingBatchLearner]:
    return (
        db.query(models.TrainingBatchLearner)
        .filter(models.TrainingBatchLearner.training_batch_id == batch_id)
        .all()
    )


def _get_session(db: Session, batch_id: str, session_id: str) -> models.TrainingBatchSession:
    session = (
        db.query(models.TrainingBatchSession)
        .filter(
            models.TrainingBatchSession.id == session_id,
            models.TrainingBatchSession.training_batch_id == batch_id,
        )
        .first()
    )
    if session is None:
        raise NotFoundError("Session not found")
    return session


def _recount(db: Session, batch: models.TrainingBatch) -> None:
    count = (
        db.query(models.TrainingBatchLearner)
        .filter(models.TrainingBatchLearner.training_batch_id == batch.id)
        .count()
    )
    batch.current_participant = count
    batch.spot_left = batch.capacity - count
    db.add(batch)
    db.flush()


def _validate_session_count(session_count: int) -> None:
    if not (MIN_SESSION_COUNT <= int(session_count) <= MAX_SESSION_COUNT):
        raise ValidationError(
            f"Session count must be between {MIN_SESSION_COUNT} and {MAX_SESSION_COUNT}"
        )


def _validate_capacity(capacity: int) -> None:
    if int(capacity) < 1:
        raise ValidationError("Capacity must be at least 1")


def _normalise_duration(duration_hrs: Any) -> Optional[Decimal]:
    if duration_hrs is None or duration_hrs == "":
        return None
    try:
        value = Decimal(str(duration_hrs))
    except InvalidOperation:
        raise ValidationError("Duration must be a number of hours")
    if value < 0 or (value * 2) % 1 != 0:
        raise ValidationError("Duration must be a non-negative multiple of 0.5 hours")
    return value


def _normalise_learner_ids(learner_ids: Optional[Iterable[str]]) -> List[str]:
    ids = [str(x).strip() for x in (learner_ids or []) if str(x).strip()]
    if len(set(ids)) != len(ids):
        raise ValidationError("Each learner can only be added to a batch once")
    return ids


def _normalise_session_dates(
    session_dates: Optional[Mapping[int, Any] | Sequence[Any]],
    session_count: int,
) -> Dict[int, Optional[date]]:
    """
    Accept either {session_number: date} or a list where index 0 is session 1.
    Dates are truncated to the calendar day.
    """
    if not session_dates:
        return {}
    if isinstance(session_dates, Mapping):
        items = [(int(k), v) for k, v in session_dates.items()]
    else:
        items = [(idx + 1, v) for idx, v in enumerate(session_dates)]

    result: Dict[int, Optional[date]] = {}
    for number, value in items:
        if not (1 <= number <= session_count):
            raise ValidationError(f"Session {number} does not exist in this batch")
        result[number] = to_date_only(value)
    return result


def _check_session_order(dates: Mapping[int, Optional[date]], session_count: int) -> None:
    for number in range(2, session_count + 1):
        if dates.get(number) is not None and dates.get(number - 1) is None:
            raise SequenceError(
                f"Cannot schedule Session {number} before Session {number - 1} has a date"
            )


def _require_eligible(
    db: Session,
    *,
    learner_ids: List[str],
    competency_level_id: str,
) -> Dict[str, tr_models.TrainingRequest]:
    matched = tr_services.find_queue_eligible_requests(
        db,
        learner_user_ids=learner_ids,
        competency_level_id=competency_level_id,
        eligible_statuses=status_labels.queue_eligible_statuses(),
    )
    missing = [learner_id for learner_id in learner_ids if learner_id not in matched]
    if missing:
        raise EligibilityError(
            NOT_IN_QUEUE_MESSAGE,
            detail=[{"field": "learner_ids", "reason": learner_id} for learner_id in missing],
        )
    return matched


def _attach_learners(
    db: Session,
    batch: models.TrainingBatch,
    matched: Dict[str, tr_models.TrainingRequest],
) -> None:
    for learner_id, tr in matched.items():
        db.add(
            models.TrainingBatchLearner(
                training_batch_id=batch.id,
                learner_user_id=learner_id,
                training_request_id=tr.id,
            )
        )
        tr_services.set_status(
            db,
            tr,
            TrainingRequestStatus.IN_PROGRESS,
            training_batch_id=batch.id,
        )
    db.flush()


def _delete_learner_records(db: Session, batch_id: str, learner_user_id: str) -> None:
    for model in (models.AttendanceRecord, models.HomeworkRecord):
        rows = (
            db.query(model)
            .filter(model.training_batch_id == batch_id, model.learner_user_id == learner_user_id)
            .all()
        )
        for row in rows:
            db.delete(row)


def _delete_session_records(db: Session, session_ids: List[str]) -> None:
    if not session_ids:
        return
    for model in (models.AttendanceRecord, models.HomeworkRecord):
        for row in db.query(model).filter(model.session_id.in_(session_ids)).all():
            db.delete(row)


def _release_training_request(
    db: Session,
    row: models.TrainingBatchLearner,
    *,
    status: TrainingRequestStatus,
    drop_off_reason: Any = None,
) -> None:
    tr = db.get(tr_models.TrainingRequest, row.training_request_id)
    if tr is None:
        return
    if status == TrainingRequestStatus.DROP_OFF:
        tr_services.set_status(db, tr, status, training_batch_id=None, drop_off_reason=drop_off_reason)
    else:
        tr_services.set_status(db, tr, status, training_batch_id=None)


def _training_requests_for(db: Session, batch_id: str) -> List[tr_models.TrainingRequest]:
    ids = [row.training_request_id for row in _learner_rows(db, batch_id)]
    if not ids:
        return []
    return db.query(tr_models.TrainingRequest).filter(tr_models.TrainingRequest.id.in_(ids)).all()


def _promote_to_in_progress(db: Session, trs: Iterable[tr_models.TrainingRequest]) -> None:
    for tr in trs:
        if tr.status == int(TrainingRequestStatus.IN_PROGRESS) or tr.status in _COMPLETED_TR_STATUSES:
            continue
        tr_services.set_status(db, tr, TrainingRequestStatus.IN_PROGRESS)


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def next_batch_number(db: Session, competency_level_id: str) -> int:
    """One more than the highest "Batch N" name used for the level."""
    names = (
        db.query(models.TrainingBatch.batch_name)
        .filter(models.TrainingBatch.competency_level_id == competency_level_id)
        .all()
    )
    highest = 0
    for (name,) in names:
        match = BATCH_NAME_PATTERN.match((name or "").strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------


def create_batch(
    db: Session,
    *,
    competency_level_id: str,
    trainer_user_id: str,
    session_count: int,
    capacity: int,
    learner_ids: Optional[Iterable[str]] = None,
    session_dates: Optional[Mapping[int, Any] | Sequence[Any]] = None,
    batch_name: Optional[str] = None,
    duration_hrs: Any = None,
    estimated_start: Optional[date] = None,
) -> models.TrainingBatch:
    _validate_session_count(session_count)
    _validate_capacity(capacity)
    duration = _normalise_duration(duration_hrs)
    competency_services.get_level(db, competency_level_id)
    if not db.get(account_models.User, trainer_user_id):
        raise NotFoundError("Trainer not found")

    ids = _normalise_learner_ids(learner_ids)
    if len(ids) > int(capacity):
        raise CapacityError(EXCEED_CAPACITY_MESSAGE)

    dates = _normalise_session_dates(session_dates, int(session_count))
    _check_session_order(dates, int(session_count))

    matched = _require_eligible(db, learner_ids=ids, competency_level_id=competency_level_id)

    batch = models.TrainingBatch(
        competency_level_id=competency_level_id,
        trainer_user_id=trainer_user_id,
        batch_name=(batch_name or "").strip() or f"Batch {next_batch_number(db, competency_level_id)}",
        session_count=int(session_count),
        duration_hrs=duration,
        estimated_start=to_date_only(estimated_start),
        batch_start_date=dates.get(1),
        capacity=int(capacity),
        current_participant=len(ids),
        spot_left=int(capacity) - len(ids),
    )
    db.add(batch)
    db.flush()

    for number in range(1, int(session_count) + 1):
        db.add(
            models.TrainingBatchSession(
                training_batch_id=batch.id,
                session_number=number,
                session_date=dates.get(number),
            )
        )
    db.flush()

    _attach_learners(db, batch, {learner_id: matched[learner_id] for learner_id in ids})
    _recount(db, batch)

    logger.info(
        "Training batch created",
        extra={"batch_id": batch.id, "batch_name": batch.batch_name, "learners": len(ids)},
    )
    return batch


def update_batch(
    db: Session,
    *,
    batch_id: str,
    changes: Optional[Dict[str, Any]] = None,
    learner_ids: Optional[Iterable[str]] = None,
    session_dates: Optional[Mapping[int, Any] | Sequence[Any]] = None,
) -> models.TrainingBatch:
    """
    Partial update of a batch.

    All checks (capacity, session count, ordering, eligibility of added
    learners) run before the first write.
    """
    changes = dict(changes or {})
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)

    current_rows = _learner_rows(db, batch.id)
    current_ids = {row.learner_user_id for row in current_rows}

    new_capacity = int(changes["capacity"]) if changes.get("capacity") is not None else batch.capacity
    _validate_capacity(new_capacity)
    if new_capacity < len(current_ids):
        raise CapacityError(
            f"Cannot set capacity below current participant count ({len(current_ids)})"
        )

    new_session_count = (
        int(changes["session_count"]) if changes.get("session_count") is not None else batch.session_count
    )
    _validate_session_count(new_session_count)

    if "duration_hrs" in changes:
        changes["duration_hrs"] = _normalise_duration(changes["duration_hrs"])
    if "estimated_start" in changes:
        changes["estimated_start"] = to_date_only(changes["estimated_start"])
    if changes.get("trainer_user_id") and not db.get(account_models.User, changes["trainer_user_id"]):
        raise NotFoundError("Trainer not found")
    if "batch_name" in changes and not (changes["batch_name"] or "").strip():
        raise ValidationError("Batch name cannot be empty")

    # Resulting session dates: existing ones (trimmed to the new count) plus
    # any non-null dates supplied now.
    sessions = _sessions(db, batch.id)
    dates: Dict[int, Optional[date]] = {
        s.session_number: s.session_date for s in sessions if s.session_number <= new_session_count
    }
    incoming = {
        number: value
        for number, value in _normalise_session_dates(session_dates, new_session_count).items()
        if value is not None
    }
    dates.update(incoming)
    _check_session_order(dates, new_session_count)

    to_add: List[str] = []
    to_remove: List[models.TrainingBatchLearner] = []
    matched: Dict[str, tr_models.TrainingRequest] = {}
    if learner_ids is not None:
        wanted = _normalise_learner_ids(learner_ids)
        wanted_set = set(wanted)
        to_add = [learner_id for learner_id in wanted if learner_id not in current_ids]
        to_remove = [row for row in current_rows if row.learner_user_id not in wanted_set]
        if len(wanted_set) > new_capacity:
            raise CapacityError(EXCEED_CAPACITY_MESSAGE)
        matched = _require_eligible(db, learner_ids=to_add, competency_level_id=batch.competency_level_id)

    # -- writes ---------------------------------------------------------------

    for field in _UPDATABLE_FIELDS:
        if field in changes:
            value = changes[field]
            setattr(batch, field, value.strip() if isinstance(value, str) else value)
    batch.capacity = new_capacity

    if new_session_count > batch.session_count:
        for number in range(batch.session_count + 1, new_session_count + 1):
            db.add(models.TrainingBatchSession(training_batch_id=batch.id, session_number=number))
    elif new_session_count < batch.session_count:
        trimmed = [s for s in sessions if s.session_number > new_session_count]
        _delete_session_records(db, [s.id for s in trimmed])
        for s in trimmed:
            db.delete(s)
    batch.session_count = new_session_count
    db.flush()

    if incoming:
        for s in _sessions(db, batch.id):
            if s.session_number in incoming:
                s.session_date = incoming[s.session_number]
        if 1 in incoming:
            batch.batch_start_date = incoming[1]

    for row in to_remove:
        _release_training_request(db, row, status=TrainingRequestStatus.IN_QUEUE)
        _delete_learner_records(db, batch.id, row.learner_user_id)
        db.delete(row)
    db.flush()

    if to_add:
        _attach_learners(db, batch, {learner_id: matched[learner_id] for learner_id in to_add})

    db.expire(batch, ["sessions", "learners", "attendance", "homework"])
    _recount(db, batch)
    return batch


def delete_batch(db: Session, *, batch_id: str) -> None:
    """Put every learner back in the queue, then delete the batch and its rows."""
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)

    trs = {tr.id: tr for tr in _training_requests_for(db, batch.id)}
    for tr in db.query(tr_models.TrainingRequest).filter(tr_models.TrainingRequest.training_batch_id == batch.id):
        trs.setdefault(tr.id, tr)
    for tr in trs.values():
        tr_services.set_status(db, tr, TrainingRequestStatus.IN_QUEUE, training_batch_id=None)

    db.delete(batch)
    db.flush()
    logger.info("Training batch deleted", extra={"batch_id": batch_id, "released": len(trs)})


# ---------------------------------------------------------------------------
# Learners
# ---------------------------------------------------------------------------


def _detach_learner(
    db: Session,
    *,
    batch_id: str,
    learner_user_id: str,
    status: TrainingRequestStatus,
    drop_off_reason: Optional[str] = None,
) -> models.TrainingBatch:
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)

    row = db.get(models.TrainingBatchLearner, (batch.id, learner_user_id))
    if row is None:
        raise NotFoundError(LEARNER_NOT_IN_BATCH_MESSAGE)

    _release_training_request(db, row, status=status, drop_off_reason=drop_off_reason)
    _delete_learner_records(db, batch.id, learner_user_id)
    db.delete(row)
    db.flush()

    db.expire(batch, ["learners", "attendance", "homework"])
    _recount(db, batch)
    return batch


def remove_learner(db: Session, *, batch_id: str, learner_user_id: str) -> models.TrainingBatch:
    return _detach_learner(
        db,
        batch_id=batch_id,
        learner_user_id=learner_user_id,
        status=TrainingRequestStatus.IN_QUEUE,
    )


def drop_off_learner(
    db: Session,
    *,
    batch_id: str,
    learner_user_id: str,
    reason: Optional[str] = None,
) -> models.TrainingBatch:
    return _detach_learner(
        db,
        batch_id=batch_id,
        learner_user_id=learner_user_id,
        status=TrainingRequestStatus.DROP_OFF,
        drop_off_reason=(reason or "").strip() or None,
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def set_session_date(
    db: Session,
    *,
    batch_id: str,
    session_number: int,
    session_date: Optional[date],
) -> models.TrainingBatchSession:
    """
    Date (start) a session. Session n can only be dated once n-1 is; a date
    can only be cleared when no later session is dated.
    """
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)

    sessions = {s.session_number: s for s in _sessions(db, batch.id)}
    target = sessions.get(int(session_number))
    if target is None:
        raise NotFoundError("Session not found")

    new_date = to_date_only(session_date)
    number = target.session_number
    if new_date is not None and number > 1 and sessions[number - 1].session_date is None:
        raise SequenceError(
            f"Cannot schedule Session {number} before Session {number - 1} has a date"
        )
    if new_date is None:
        later = [n for n, s in sessions.items() if n > number and s.session_date is not None]
        if later:
            raise SequenceError(
                f"Cannot clear Session {number} while Session {min(later)} has a date"
            )

    first_start = number == 1 and target.session_date is None and new_date is not None
    target.session_date = new_date
    if number == 1:
        batch.batch_start_date = new_date
    db.flush()

    if first_start:
        _promote_to_in_progress(db, _training_requests_for(db, batch.id))
    return target


def start_session_one(
    db: Session,
    *,
    batch_id: str,
    session_date: Optional[date] = None,
) -> models.TrainingBatchSession:
    """Start the batch; a batch already started keeps its Session 1 date."""
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)
    first = next((s for s in _sessions(db, batch.id) if s.session_number == 1), None)
    if first is None:
        raise NotFoundError("Session not found")
    if first.session_date is not None:
        return first
    return set_session_date(
        db,
        batch_id=batch_id,
        session_number=1,
        session_date=session_date or today(),
    )


# ---------------------------------------------------------------------------
# Attendance / homework
# ---------------------------------------------------------------------------


def _attendance_map(db: Session, batch_id: str, learner_user_id: str) -> Dict[str, bool]:
    rows = (
        db.query(models.AttendanceRecord)
        .filter(
            models.AttendanceRecord.training_batch_id == batch_id,
            models.AttendanceRecord.learner_user_id == learner_user_id,
        )
        .all()
    )
    return {row.session_id: bool(row.attended) for row in rows}


def record_attendance(
    db: Session,
    *,
    batch_id: str,
    session_id: str,
    entries: Iterable[Mapping[str, Any]],
) -> List[models.AttendanceRecord]:
    """
    Upsert attendance for one session.

    A learner can only be marked present for session n once they attended
    every earlier session, and can only be unmarked while no later session
    is marked. Marking session 1 moves learners' requests to In Progress;
    attending the last session moves them to Sessions Completed.
    """
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)
    session = _get_session(db, batch.id, session_id)
    sessions = _sessions(db, batch.id)
    learners = {row.learner_user_id: row for row in _learner_rows(db, batch.id)}

    saved: List[models.AttendanceRecord] = []
    completed_learners: List[str] = []
    for entry in entries:
        learner_id = str(entry["learner_user_id"])
        attended = bool(entry.get("attended", False))
        if learner_id not in learners:
            raise ValidationError(LEARNER_NOT_IN_BATCH_MESSAGE)

        attendance = _attendance_map(db, batch.id, learner_id)
        if attended:
            for earlier in sessions:
                if earlier.session_number >= session.session_number:
                    break
                if not attendance.get(earlier.id, False):
                    raise SequenceError(
                        f"Cannot mark attendance for Session {session.session_number}. "
                        f"Learner must attend Session {earlier.session_number} first."
                    )
        else:
            later = [
                s.session_number
                for s in sessions
                if s.session_number > session.session_number and attendance.get(s.id, False)
            ]
            if later:
                raise SequenceError(
                    f"Cannot unmark attendance for Session {session.session_number} "
                    f"while Session {min(later)} is marked attended."
                )

        record = db.get(models.AttendanceRecord, (batch.id, learner_id, session.id))
        if record is None:
            record = models.AttendanceRecord(
                training_batch_id=batch.id,
                learner_user_id=learner_id,
                session_id=session.id,
                attended=attended,
            )
            db.add(record)
        else:
            record.attended = attended
        db.flush()
        saved.append(record)

        if attended and session.session_number == batch.session_count:
            completed_learners.append(learner_id)

    if session.session_number == 1:
        _promote_to_in_progress(
            db,
            [learners[r.learner_user_id].training_request for r in saved if r.attended],
        )

    for learner_id in completed_learners:
        tr = learners[learner_id].training_request
        if tr is not None and tr.status != int(TrainingRequestStatus.TRAINING_COMPLETED):
            tr_services.set_status(db, tr, TrainingRequestStatus.SESSIONS_COMPLETED)

    db.expire(batch, ["attendance"])
    return saved


def record_homework(
    db: Session,
    *,
    batch_id: str,
    session_id: str,
    entries: Iterable[Mapping[str, Any]],
) -> List[models.HomeworkRecord]:
    """Upsert homework; a submitted URL is kept when completion is toggled."""
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)
    session = _get_session(db, batch.id, session_id)
    learners = {row.learner_user_id for row in _learner_rows(db, batch.id)}

    saved: List[models.HomeworkRecord] = []
    for entry in entries:
        learner_id = str(entry["learner_user_id"])
        if learner_id not in learners:
            raise ValidationError(LEARNER_NOT_IN_BATCH_MESSAGE)
        completed = bool(entry.get("completed", False))
        url = (entry.get("homework_url") or "").strip() or None

        record = db.get(models.HomeworkRecord, (batch.id, learner_id, session.id))
        if record is None:
            record = models.HomeworkRecord(
                training_batch_id=batch.id,
                learner_user_id=learner_id,
                session_id=session.id,
                completed=completed,
                homework_url=url,
            )
            db.add(record)
        else:
            record.completed = completed
            if record.homework_url is None and url is not None:
                record.homework_url = url
        db.flush()
        saved.append(record)

    db.expire(batch, ["homework"])
    return saved


# ---------------------------------------------------------------------------
# Finish
# ---------------------------------------------------------------------------


def finish_batch(db: Session, *, batch_id: str) -> models.TrainingBatch:
    batch = get_batch(db, batch_id)
    _ensure_not_finished(batch)

    sessions = _sessions(db, batch.id)
    undated = [s.session_number for s in sessions if s.session_date is None]
    if undated:
        raise NotReadyError(
            "All sessions must have a date before finishing the batch",
            detail=[{"field": "session_date", "reason": f"Session {n}"} for n in undated],
        )

    learner_rows = _learner_rows(db, batch.id)
    missing: List[Dict[str, str]] = []
    for row in learner_rows:
        attendance = _attendance_map(db, batch.id, row.learner_user_id)
        for s in sessions:
            if not attendance.get(s.id, False):
                missing.append(
                    {"field": "attendance", "reason": f"{row.learner_user_id}: Session {s.session_number}"}
                )
    if missing:
        raise NotReadyError(
            "All learners must attend every session before finishing the batch",
            detail=missing,
        )

    batch.batch_finish_date = today()
    db.add(batch)
    for row in learner_rows:
        tr = row.training_request
        if tr is not None and tr.status != int(TrainingRequestStatus.TRAINING_COMPLETED):
            tr_services.set_status(db, tr, TrainingRequestStatus.SESSIONS_COMPLETED)
    db.flush()

    logger.info("Training batch finished", extra={"batch_id": batch.id, "learners": len(learner_rows)})
    return batch


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def list_batches(
    db: Session,
    *,
    competency_level_id: Optional[str] = None,
    trainer_user_id: Optional[str] = None,
    finished: Optional[bool] = None,
) -> List[models.TrainingBatch]:
    query = db.query(models.TrainingBatch)
    if competency_level_id:
        query = query.filter(models.TrainingBatch.competency_level_id == competency_level_id)
    if trainer_user_id:
        query = query.filter(models.TrainingBatch.trainer_user_id == trainer_user_id)
    if finished is True:
        query = query.filter(models.TrainingBatch.batch_finish_date.is_not(None))
    elif finished is False:
        query = query.filter(models.TrainingBatch.batch_finish_date.is_(None))
    return query.order_by(models.TrainingBatch.created_at.desc()).all()


def attendance_matrix(db: Session, batch: models.TrainingBatch) -> Dict[str, Dict[int, bool]]:
    """learner id -> {session number: attended}, defaulting to False."""
    sessions = _sessions(db, batch.id)
    matrix: Dict[str, Dict[int, bool]] = {}
    for row in _learner_rows(db, batch.id):
        attendance = _attendance_map(db, batch.id, row.learner_user_id)
        matrix[row.learner_user_id] = {s.session_number: attendance.get(s.id, False) for s in sessions}
    return matrix


def homework_matrix(db: Session, batch: models.TrainingBatch) -> Dict[str, Dict[int, Dict[str, Any]]]:
    sessions = _sessions(db, batch.id)
    by_session = {s.id: s.session_number for s in sessions}
    matrix: Dict[str, Dict[int, Dict[str, Any]]] = {
        row.learner_user_id: {
            s.session_number: {"completed": False, "homework_url": None} for s in sessions
        }
        for row in _learner_rows(db, batch.id)
    }
    records = db.query(models.HomeworkRecord).filter(models.HomeworkRecord.training_batch_id == batch.id).all()
    for record in records:
        number = by_session.get(record.session_id)
        if record.learner_user_id in matrix and number is not None:
            matrix[record.learner_user_id][number] = {
                "completed": bool(record.completed),
                "homework_url": record.homework_url,
            }
    return matrix


def available_learners(db: Session, *, competency_level_id: str) -> List[tr_models.TrainingRequest]:
    """
    Training requests that can be put into a new batch for the level: queue
    eligible, not linked to a batch, and the learner is not already sitting
    in a batch for this level.
    """
    already_in_batch = {
        learner_id
        for (learner_id,) in db.query(models.TrainingBatchLearner.learner_user_id)
        .join(models.TrainingBatch, models.TrainingBatchLearner.training_batch_id == models.TrainingBatch.id)
        .filter(models.TrainingBatch.competency_level_id == competency_level_id)
        .all()
    }
    candidates = (
        db.query(tr_models.TrainingRequest)
        .filter(
            tr_models.TrainingRequest.competency_level_id == competency_level_id,
            tr_models.TrainingRequest.status.in_(sorted(status_labels.queue_eligible_statuses())),
            tr_models.TrainingRequest.training_batch_id.is_(None),
        )
        .order_by(tr_models.TrainingRequest.requested_date.asc(), tr_models.TrainingRequest.tr_id.asc())
        .all()
    )
    return [tr for tr in candidates if tr.learner_user_id not in already_in_batch]
