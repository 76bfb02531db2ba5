from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from competencydb.errors import NotFoundError
from competencydb.status_labels import coerce_status
from competencydb.utils.identifiers import today, to_date_only
from competencydb.apps.accounts import models as account_models
from competencydb.apps.competencies import models as competency_models
from competencydb.apps.competencies import services as competency_services
from competencydb.apps.numbering import services as numbering_services

from . import models
from .models import PARStatus

logger = logging.getLogger(__name__)

RESPONSE_DUE_DAYS = 1

_PLAIN_FIELDS = ("project_name", "description", "definite_answer")
_DATE_FIELDS = ("response_date", "no_follow_up_date", "follow_up_date")


def get_par(db: Session, par_pk: str) -> models.ProjectAssignmentRequest:
    par = db.get(models.ProjectAssignmentRequest, par_pk)
    if par is None:
        raise NotFoundError("Project assignment request not found")
    return par


def get_par_by_par_id(db: Session, par_id: str) -> models.ProjectAssignmentRequest:
    par = (
        db.query(models.ProjectAssignmentRequest)
        .filter(models.ProjectAssignmentRequest.par_id == par_id)
        .first()
    )
    if par is None:
        raise NotFoundError("Project assignment request not found")
    return par


def list_pars(
    db: Session,
    *,
    status: Optional[int] = None,
    assigned_to: Optional[str] = None,
    competency_id: Optional[str] = None,
) -> List[models.ProjectAssignmentRequest]:
    """Newest first, optionally narrowed by status, assignee or competency."""
    query = db.query(models.ProjectAssignmentRequest)
    if status is not None:
        query = query.filter(models.ProjectAssignmentRequest.status == int(status))
    if assigned_to:
        query = query.filter(models.ProjectAssignmentRequest.assigned_to == assigned_to)
    if competency_id:
        query = query.join(
            competency_models.CompetencyLevel,
            competency_models.CompetencyLevel.id == models.ProjectAssignmentRequest.competency_level_id,
        ).filter(competency_models.CompetencyLevel.competency_id == competency_id)
    return query.order_by(
        models.ProjectAssignmentRequest.created_at.desc(),
        models.ProjectAssignmentRequest.par_id.desc(),
    ).all()


def create_par(
    db: Session,
    *,
    learner_user_id: str,
    competency_level_id: str,
    project_name: Optional[str] = None,
    description: Optional[str] = None,
) -> models.ProjectAssignmentRequest:
    if not db.get(account_models.User, learner_user_id):
        raise NotFoundError("Learner not found")
    competency_services.get_level(db, competency_level_id)

    requested = today()
    par = models.ProjectAssignmentRequest(
        par_id=numbering_services.next_id(db, numbering_services.PAR_NAMESPACE),
        requested_date=requested,
        learner_user_id=learner_user_id,
        competency_level_id=competency_level_id,
        status=int(PARStatus.NEW),
        response_due=requested + timedelta(days=RESPONSE_DUE_DAYS),
        project_name=project_name,
        description=description,
    )
    db.add(par)
    db.flush()
    logger.info("Project assignment request created", extra={"par_id": par.par_id})
    return par


def update_par(
    db: Session,
    *,
    par_pk: str,
    changes: Dict[str, Any],
) -> models.ProjectAssignmentRequest:
    """
    Apply the fields present in `changes`. An explicit `assigned_to` of None
    unassigns; any other value must be an existing user.
    """
    par = get_par(db, par_pk)

    if changes.get("status") is not None:
        par.status = int(coerce_status(PARStatus, changes["status"]))
    if "assigned_to" in changes:
        assignee = changes["assigned_to"]
        if assignee is not None and not db.get(account_models.User, assignee):
            raise NotFoundError("Assignee not found")
        par.assigned_to = assignee
    for field in _PLAIN_FIELDS:
        if field in changes:
            setattr(par, field, changes[field])
    for field in _DATE_FIELDS:
        if field in changes:
            setattr(par, field, to_date_only(changes[field]))

    db.add(par)
    db.flush()
    return par


def edit_activity(par: models.ProjectAssignmentRequest, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Activity-log payload for an edit: who the request is for, plus what changed."""
    return {
        "par_id": par.par_id,
        "learner_id": par.learner_user_id,
        "learner_name": par.learner.name if par.learner else None,
        "competency_level_id": par.competency_level_id,
        **changes,
    }


def assignable_users(db: Session) -> List[account_models.User]:
    return (
        db.query(account_models.User)
        .filter(account_models.User.is_active.is_(True))
        .order_by(account_models.User.name)
        .all()
    )
