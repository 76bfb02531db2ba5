"""
Cross-entity effects of VPA / VSR status changes.

Each effect is registered on the workflow edge table and runs in the
caller's session, so it commits or rolls back with the status change that
triggered it.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from competencydb.utils.identifiers import today
from competencydb.apps.audit import services as audit_services
from competencydb.apps.numbering import services as numbering_services
from competencydb.apps.training_requests import services as tr_services
from competencydb.apps.training_requests.models import TrainingRequestStatus
from competencydb.apps.workflow import ANY, register_edge

from . import models
from .models import VPAStatus, VSRStatus

logger = logging.getLogger(__name__)

RESPONSE_DUE_DAYS = 1


def find_vsr_by_tr_id(db: Session, tr_id: Optional[str]) -> Optional[models.ValidationScheduleRequest]:
    if not tr_id:
        return None
    return (
        db.query(models.ValidationScheduleRequest)
        .filter(models.ValidationScheduleRequest.tr_id == tr_id)
        .order_by(models.ValidationScheduleRequest.created_at.asc())
        .first()
    )


def find_vpa_by_tr_id(db: Session, tr_id: Optional[str]) -> Optional[models.ValidationProjectApproval]:
    if not tr_id:
        return None
    return (
        db.query(models.ValidationProjectApproval)
        .filter(models.ValidationProjectApproval.tr_id == tr_id)
        .order_by(models.ValidationProjectApproval.created_at.desc())
        .first()
    )


@register_edge("vpa", ANY, VPAStatus.APPROVED)
def open_validation_schedule(
    db: Session,
    *,
    actor_user_id: Optional[str],
    before_obj: Any,
    after_obj: models.ValidationProjectApproval,
    from_state: Any,
    to_state: Any,
) -> None:
    """Reset the VSR for the approved project's TR, or create the first one."""
    if not after_obj.tr_id:
        logger.info("Approved VPA has no training request; no VSR opened", extra={"vpa_id": after_obj.vpa_id})
        return

    requested = today()
    vsr = find_vsr_by_tr_id(db, after_obj.tr_id)
    if vsr is not None:
        vsr.requested_date = requested
        vsr.status = int(VSRStatus.PENDING_VALIDATION)
        vsr.response_due = requested + timedelta(days=RESPONSE_DUE_DAYS)
        vsr.description = after_obj.project_details
        created = False
    else:
        vsr = models.ValidationScheduleRequest(
            vsr_id=numbering_services.next_id(db, numbering_services.VSR_NAMESPACE),
            tr_id=after_obj.tr_id,
            learner_user_id=after_obj.learner_user_id,
            competency_level_id=after_obj.competency_level_id,
            requested_date=requested,
            status=int(VSRStatus.PENDING_VALIDATION),
            response_due=requested + timedelta(days=RESPONSE_DUE_DAYS),
            description=after_obj.project_details,
        )
        created = True
    db.add(vsr)
    db.flush()

    logger.info(
        "VSR opened from approved VPA",
        extra={"vpa_id": after_obj.vpa_id, "vsr_id": vsr.vsr_id, "vsr_created": created},
    )


@register_edge("vsr", ANY, VSRStatus.PASS)
def complete_training_request(
    db: Session,
    *,
    actor_user_id: Optional[str],
    before_obj: Any,
    after_obj: models.ValidationScheduleRequest,
    from_state: Any,
    to_state: Any,
) -> None:
    tr = tr_services.find_by_tr_id(db, after_obj.tr_id)
    if tr is None:
        logger.warning("Passed VSR has no matching training request", extra={"vsr_id": after_obj.vsr_id})
        return
    tr_services.set_status(db, tr, TrainingRequestStatus.TRAINING_COMPLETED)


@register_edge("vsr", ANY, VSRStatus.FAIL)
def reopen_project_approval(
    db: Session,
    *,
    actor_user_id: Optional[str],
    before_obj: Any,
    after_obj: models.ValidationScheduleRequest,
    from_state: Any,
    to_state: Any,
) -> None:
    """Send the learner's project back for re-validation and log the forced change."""
    vpa = find_vpa_by_tr_id(db, after_obj.tr_id)
    if vpa is None:
        logger.warning("Failed VSR has no matching VPA", extra={"vsr_id": after_obj.vsr_id})
        return

    vpa.status = int(VPAStatus.RESUBMIT_FOR_REVALIDATION)
    db.add(vpa)
    db.flush()

    audit_services.append_entry(
        db,
        entity_type="vpa",
        entity_id=vpa.vpa_id,
        status=vpa.status,
        actor_user_id=actor_user_id,
        details={
            "project_details": vpa.project_details,
            "rejection_reason": None,
            "triggered_by": after_obj.vsr_id,
        },
    )
