from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from competencydb.errors import NotFoundError, ValidationError
from competencydb.status_labels import coerce_status
from competencydb.utils.identifiers import today
from competencydb.apps.competencies import services as competency_services
from competencydb.apps.accounts import models as account_models
from competencydb.apps.numbering import services as numbering_services
from competencydb.apps.workflow import resolve_assignee

from . import models
from .models import TrainingRequestStatus

logger = logging.getLogger(__name__)

RESPONSE_DUE_DAYS = 1
NO_FOLLOW_UP_DAYS = 3

DUPLICATE_REQUEST_MESSAGE = "You already have a training request for this competency level"

# Response due tracks the requested date until someone picks the request up.
_RESPONSE_TRACKING_STATUSES = {
    TrainingRequestStatus.NOT_STARTED,
    TrainingRequestStatus.LOOKING_FOR_TRAINER,
}

_ADMIN_FIELDS = (
    "on_hold_by",
    "on_hold_reason",
    "drop_off_reason",
    "is_blocked",
    "blocked_reason",
    "expected_unblocked_date",
    "notes",
    "response_date",
    "definite_answer",
    "follow_up_date",
)

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_training_request(db: Session, request_id: str) -> models.TrainingRequest:
    tr = db.get(models.TrainingRequest, request_id)
    if tr is None:
        raise NotFoundError("Training request not found")
    return tr


def find_by_tr_id(db: Session, tr_id: Optional[str]) -> Optional[models.TrainingRequest]:
    if not tr_id:
        return None
    return db.query(models.TrainingRequest).filter(models.TrainingRequest.tr_id == tr_id).first()


def list_training_requests(
    db: Session,
    *,
    status: Optional[int] = None,
    competency_level_id: Optional[str] = None,
    learner_user_id: Optional[str] = None,
    training_batch_id: Optional[str] = None,
) -> List[models.TrainingRequest]:
    query = db.query(models.TrainingRequest)
    if status is not None:
        query = query.filter(models.TrainingRequest.status == int(status))
    if competency_level_id:
        query = query.filter(models.TrainingRequest.competency_level_id == competency_level_id)
    if learner_user_id:
        query = query.filter(models.TrainingRequest.learner_user_id == learner_user_id)
    if training_batch_id:
        query = query.filter(models.TrainingRequest.training_batch_id == training_batch_id)
    return query.order_by(models.TrainingRequest.requested_date.asc(), models.TrainingRequest.tr_id.asc()).all()


def find_queue_eligible_requests(
    db: Session,
    *,
    learner_user_ids: Iterable[str],
    competency_level_id: str,
    eligible_statuses: Iterable[int],
) -> Dict[str, models.TrainingRequest]:
    """
    Map learner id -> their training request for `competency_level_id`, for
    learners whose request is in one of `eligible_statuses`.
    """
    learner_ids = list(learner_user_ids)
    if not learner_ids:
        return {}
    rows = (
        db.query(models.TrainingRequest)
        .filter(
            models.TrainingRequest.learner_user_id.in_(learner_ids),
            models.TrainingRequest.competency_level_id == competency_level_id,
            models.TrainingRequest.status.in_([int(s) for s in eligible_statuses]),
        )
        .all()
    )
    return {row.learner_user_id: row for row in rows}


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def set_status(
    db: Session,
    tr: models.TrainingRequest,
    status: TrainingRequestStatus | int,
    *,
    training_batch_id: Any = _UNSET,
    drop_off_reason: Any = _UNSET,
) -> models.TrainingRequest:
    """
    Move a training request to `status`.

    Every workflow step that changes a TR goes through here so the
    in-queue stamp and logging stay consistent.
    """
    new_status = coerce_status(TrainingRequestStatus, status)
    previous = tr.status

    tr.status = int(new_status)
    if training_batch_id is not _UNSET:
        tr.training_batch_id = training_batch_id
    if drop_off_reason is not _UNSET:
        tr.drop_off_reason = drop_off_reason
    if new_status == TrainingRequestStatus.IN_QUEUE and previous != int(new_status):
        tr.in_queue_date = today()

    db.add(tr)
    db.flush()

    if previous != int(new_status):
        logger.info(
            "Training request status changed",
            extra={"tr_id": tr.tr_id, "from_status": previous, "to_status": int(new_status)},
        )
    return tr


def create_training_request(
    db: Session,
    *,
    learner_user_id: str,
    competency_level_id: str,
) -> models.TrainingRequest:
    if not db.get(account_models.User, learner_user_id):
        raise NotFoundError("Learner not found")
    competency_services.get_level(db, competency_level_id)

    duplicate = (
        db.query(models.TrainingRequest.id)
        .filter(
            models.TrainingRequest.learner_user_id == learner_user_id,
            models.TrainingRequest.competency_level_id == competency_level_id,
        )
        .first()
    )
    if duplicate:
        raise ValidationError(DUPLICATE_REQUEST_MESSAGE)

    requested = today()
    tr = models.TrainingRequest(
        tr_id=numbering_services.next_id(db, numbering_services.TR_NAMESPACE),
        requested_date=requested,
        learner_user_id=learner_user_id,
        competency_level_id=competency_level_id,
        status=int(TrainingRequestStatus.NOT_STARTED),
        is_blocked=False,
        response_due=requested + timedelta(days=RESPONSE_DUE_DAYS),
    )
    db.add(tr)
    db.flush()
    return tr


def update_training_request(
    db: Session,
    *,
    tr: models.TrainingRequest,
    actor_user_id: Optional[str],
    changes: Dict[str, Any],
) -> models.TrainingRequest:
    """
    Admin edit of a training request.

    - `assigned_to` is sticky (first editor keeps it).
    - Status changes go through `set_status`.
    - Response due is recalculated while the request is not yet picked up;
      the no-follow-up date tracks `definite_answer=False`.
    """
    for field in _ADMIN_FIELDS:
        if field in changes:
            setattr(tr, field, changes[field])

    if tr.on_hold_by is not None and tr.on_hold_by not in (0, 1):
        raise ValidationError("on_hold_by must be 0 (Learner) or 1 (Trainer)")

    tr.assigned_to = resolve_assignee(tr.assigned_to, changes.get("assigned_to"), actor_user_id)

    if changes.get("status") is not None:
        set_status(db, tr, changes["status"])

    if TrainingRequestStatus(tr.status) in _RESPONSE_TRACKING_STATUSES:
        tr.response_due = tr.requested_date + timedelta(days=RESPONSE_DUE_DAYS)

    if tr.definite_answer is False:
        tr.no_follow_up_date = tr.requested_date + timedelta(days=NO_FOLLOW_UP_DAYS)
    else:
        tr.no_follow_up_date = None

    db.add(tr)
    db.flush()
    return tr
