from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from competencydb.errors import NotFoundError, ValidationError
from competencydb.status_labels import coerce_status
from competencydb.utils.identifiers import today, to_date_only
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts import services as account_services
from competencydb.apps.accounts.models import OPS_ROLE_NAME, TRAINER_ROLE_NAME
from competencydb.apps.audit import services as audit_services
from competencydb.apps.competencies import services as competency_services
from competencydb.apps.numbering import services as numbering_services
from competencydb.apps.workflow import apply_transition, resolve_assignee

from . import edges  # noqa: F401  (registers VPA / VSR edge effects)
from . import models
from .models import VPAStatus, VSRStatus, VSR_OPEN_STATUSES

logger = logging.getLogger(__name__)

VPA_ENTITY = "vpa"
VSR_ENTITY = "vsr"

RESPONSE_DUE_DAYS = 1
NO_FOLLOW_UP_DAYS = 3

_VSR_FIELDS = (
    "validator_ops",
    "validator_trainer",
    "scheduled_date",
    "response_date",
    "definite_answer",
    "follow_up_date",
    "description",
)

_VSR_DATE_FIELDS = {"scheduled_date", "response_date", "follow_up_date"}


def _snapshot(obj: Any, fields: List[str]) -> Dict[str, Any]:
    return {field: getattr(obj, field) for field in fields}


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


def get_vpa(db: Session, vpa_pk: str) -> models.ValidationProjectApproval:
    vpa = db.get(models.ValidationProjectApproval, vpa_pk)
    if vpa is None:
        raise NotFoundError("VPA not found")
    return vpa


def list_vpas(
    db: Session,
    *,
    status: Optional[int] = None,
    assigned_to: Optional[str] = None,
) -> List[models.ValidationProjectApproval]:
    query = db.query(models.ValidationProjectApproval)
    if status is not None:
        query = query.filter(models.ValidationProjectApproval.status == int(status))
    if assigned_to:
        query = query.filter(models.ValidationProjectApproval.assigned_to == assigned_to)
    return query.order_by(models.ValidationProjectApproval.requested_date.desc()).all()


def vpa_history(db: Session, vpa_id: str):
    return audit_services.list_entries(db, entity_type=VPA_ENTITY, entity_id=vpa_id)


def create_vpa(
    db: Session,
    *,
    vpa_id: str,
    learner_user_id: str,
    competency_level_id: str,
    tr_id: Optional[str] = None,
    project_details: Optional[str] = None,
) -> models.ValidationProjectApproval:
    vpa_id = (vpa_id or "").strip()
    if not vpa_id:
        raise ValidationError("VPA id is required")
    if (
        db.query(models.ValidationProjectApproval.id)
        .filter(models.ValidationProjectApproval.vpa_id == vpa_id)
        .first()
    ):
        raise ValidationError(f"VPA {vpa_id} already exists")
    if not db.get(account_models.User, learner_user_id):
        raise NotFoundError("Learner not found")
    competency_services.get_level(db, competency_level_id)

    requested = today()
    vpa = models.ValidationProjectApproval(
        vpa_id=vpa_id,
        tr_id=tr_id,
        learner_user_id=learner_user_id,
        competency_level_id=competency_level_id,
        status=int(VPAStatus.PENDING),
        requested_date=requested,
        response_due=requested + timedelta(days=RESPONSE_DUE_DAYS),
        project_details=project_details,
    )
    db.add(vpa)
    db.flush()
    return vpa


def update_vpa(
    db: Session,
    *,
    vpa_pk: str,
    actor_user_id: Optional[str],
    changes: Dict[str, Any],
) -> models.ValidationProjectApproval:
    """
    Edit a VPA and run its workflow edges in the same transaction.

    Rejecting requires a reason. Moving into Approved opens (or resets)
    the VSR for the same training request. One audit entry with the
    resulting state is appended per call.
    """
    vpa = get_vpa(db, vpa_pk)
    before = _snapshot(vpa, ["status", "assigned_to", "project_details", "rejection_reason"])
    previous_status = VPAStatus(vpa.status)

    new_status = (
        coerce_status(VPAStatus, changes["status"]) if changes.get("status") is not None else previous_status
    )

    if "project_details" in changes and changes["project_details"] is not None:
        vpa.project_details = changes["project_details"]
    if changes.get("rejection_reason") is not None:
        vpa.rejection_reason = str(changes["rejection_reason"]).strip() or None
    if "response_date" in changes:
        vpa.response_date = to_date_only(changes["response_date"])

    vpa.assigned_to = resolve_assignee(vpa.assigned_to, changes.get("assigned_to"), actor_user_id)
    vpa.status = int(new_status)

    if new_status == VPAStatus.PENDING:
        vpa.response_due = vpa.requested_date + timedelta(days=RESPONSE_DUE_DAYS)
    elif changes.get("response_due") is not None:
        vpa.response_due = to_date_only(changes["response_due"])

    apply_transition(
        db,
        actor_user_id=actor_user_id,
        entity_type=VPA_ENTITY,
        entity_id=vpa.vpa_id,
        from_state=previous_status,
        to_state=new_status,
        before_obj=before,
        after_obj=vpa,
    )

    db.add(vpa)
    db.flush()

    audit_services.append_entry(
        db,
        entity_type=VPA_ENTITY,
        entity_id=vpa.vpa_id,
        status=vpa.status,
        actor_user_id=actor_user_id,
        details={
            "project_details": vpa.project_details,
            "rejection_reason": vpa.rejection_reason if (
                changes.get("rejection_reason") or new_status == VPAStatus.REJECTED
            ) else None,
        },
    )
    return vpa


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


def vsr_date_defaults(
    requested_date: date,
    status: int,
    definite_answer: Optional[bool],
    stored_response_due: Optional[date],
) -> Dict[str, Optional[date]]:
    """
    Derived VSR dates.

    response_due follows the requested date while the VSR is open and is
    frozen afterwards; no_follow_up_date is only set while the answer is a
    definite "no".
    """
    if status in VSR_OPEN_STATUSES:
        response_due = requested_date + timedelta(days=RESPONSE_DUE_DAYS)
    else:
        response_due = stored_response_due
    no_follow_up = requested_date + timedelta(days=NO_FOLLOW_UP_DAYS) if definite_answer is False else None
    return {"response_due": response_due, "no_follow_up_date": no_follow_up}


def get_vsr(db: Session, vsr_pk: str) -> models.ValidationScheduleRequest:
    vsr = db.get(models.ValidationScheduleRequest, vsr_pk)
    if vsr is None:
        raise NotFoundError("VSR not found")
    return vsr


def get_vsr_by_vsr_id(db: Session, vsr_id: str) -> models.ValidationScheduleRequest:
    vsr = (
        db.query(models.ValidationScheduleRequest)
        .filter(models.ValidationScheduleRequest.vsr_id == vsr_id)
        .first()
    )
    if vsr is None:
        raise NotFoundError("VSR not found")
    return vsr


def list_vsrs(
    db: Session,
    *,
    status: Optional[int] = None,
    assigned_to: Optional[str] = None,
    tr_id: Optional[str] = None,
) -> List[models.ValidationScheduleRequest]:
    query = db.query(models.ValidationScheduleRequest)
    if status is not None:
        query = query.filter(models.ValidationScheduleRequest.status == int(status))
    if assigned_to:
        query = query.filter(models.ValidationScheduleRequest.assigned_to == assigned_to)
    if tr_id:
        query = query.filter(models.ValidationScheduleRequest.tr_id == tr_id)
    return query.order_by(models.ValidationScheduleRequest.requested_date.desc()).all()


def vsr_history(db: Session, vsr_id: str):
    return audit_services.list_entries(db, entity_type=VSR_ENTITY, entity_id=vsr_id)


def create_vsr(
    db: Session,
    *,
    learner_user_id: str,
    competency_level_id: str,
    tr_id: Optional[str] = None,
    description: Optional[str] = None,
) -> models.ValidationScheduleRequest:
    if not db.get(account_models.User, learner_user_id):
        raise NotFoundError("Learner not found")
    competency_services.get_level(db, competency_level_id)

    requested = today()
    defaults = vsr_date_defaults(requested, int(VSRStatus.PENDING_VALIDATION), None, None)
    vsr = models.ValidationScheduleRequest(
        vsr_id=numbering_services.next_id(db, numbering_services.VSR_NAMESPACE),
        tr_id=tr_id,
        learner_user_id=learner_user_id,
        competency_level_id=competency_level_id,
        requested_date=requested,
        description=description,
        status=int(VSRStatus.PENDING_VALIDATION),
        response_due=defaults["response_due"],
    )
    db.add(vsr)
    db.flush()
    return vsr


def update_vsr(
    db: Session,
    *,
    vsr_pk: str,
    actor_user_id: Optional[str],
    changes: Dict[str, Any],
) -> models.ValidationScheduleRequest:
    """
    Edit a VSR. Pass completes the training request; Fail sends the VPA back
    for re-validation. Both fire only on the change into that status.
    """
    vsr = get_vsr(db, vsr_pk)
    before = _snapshot(vsr, ["status", "assigned_to", "description"])
    previous_status = VSRStatus(vsr.status)
    new_status = (
        coerce_status(VSRStatus, changes["status"]) if changes.get("status") is not None else previous_status
    )

    for field in _VSR_FIELDS:
        if field in changes:
            value = changes[field]
            setattr(vsr, field, to_date_only(value) if field in _VSR_DATE_FIELDS else value)

    vsr.assigned_to = resolve_assignee(vsr.assigned_to, changes.get("assigned_to"), actor_user_id)
    vsr.status = int(new_status)

    defaults = vsr_date_defaults(vsr.requested_date, vsr.status, vsr.definite_answer, vsr.response_due)
    vsr.response_due = defaults["response_due"]
    vsr.no_follow_up_date = defaults["no_follow_up_date"]

    db.add(vsr)
    db.flush()

    apply_transition(
        db,
        actor_user_id=actor_user_id,
        entity_type=VSR_ENTITY,
        entity_id=vsr.vsr_id,
        from_state=previous_status,
        to_state=new_status,
        before_obj=before,
        after_obj=vsr,
    )

    audit_services.append_entry(
        db,
        entity_type=VSR_ENTITY,
        entity_id=vsr.vsr_id,
        status=vsr.status,
        actor_user_id=actor_user_id,
        details={
            "scheduled_date": vsr.scheduled_date,
            "validator_ops": vsr.validator_ops,
            "validator_trainer": vsr.validator_trainer,
            "definite_answer": vsr.definite_answer,
        },
    )
    return vsr


def delete_vsr(db: Session, *, vsr_id: str) -> str:
    """Delete a VSR, looked up by its vsr_id, together with its status history."""
    vsr = get_vsr_by_vsr_id(db, vsr_id)
    purged = audit_services.purge_entity_log(db, entity_type=VSR_ENTITY, entity_id=vsr_id)
    db.delete(vsr)
    db.flush()
    logger.info("VSR deleted", extra={"vsr_id": vsr_id, "history_rows": purged})
    return vsr_id


def eligible_vsr_assignees(db: Session, vsr: models.ValidationScheduleRequest) -> List[account_models.User]:
    """Ops users, plus trainers registered for the VSR's competency."""
    trainer_ids = set(competency_services.trainers_for_level(db, vsr.competency_level_id))
    eligible = list(account_services.users_with_role(db, OPS_ROLE_NAME))
    eligible.extend(
        user for user in account_services.users_with_role(db, TRAINER_ROLE_NAME) if user.id in trainer_ids
    )
    return sorted(eligible, key=lambda user: (user.name or "").lower())
