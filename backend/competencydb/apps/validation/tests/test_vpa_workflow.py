from __future__ import annotations

from datetime import timedelta

import pytest

from competencydb.errors import GenerationError, NotFoundError, ValidationError
from competencydb.operations import run_operation
from competencydb.utils.identifiers import today
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts.models import PermissionAction, PermissionModule
from competencydb.apps.audit import services as audit_services
from competencydb.apps.competencies import models as competency_models
from competencydb.apps.numbering import services as numbering_services
from competencydb.apps.training_requests import services as tr_services
from competencydb.apps.validation import models, services
from competencydb.apps.validation.models import VPAStatus, VSRStatus


def _create_user(db_session, email: str) -> account_models.User:
    user = account_models.User(email=email, name=email.split("@")[0])
    db_session.add(user)
    db_session.flush()
    return user


def _create_level(db_session) -> competency_models.CompetencyLevel:
    competency = competency_models.Competency(name="Inspection")
    db_session.add(competency)
    db_session.flush()
    level = competency_models.CompetencyLevel(competency_id=competency.id, name="Advanced")
    db_session.add(level)
    db_session.flush()
    return level


def _create_vpa(db_session, *, vpa_id="VPA-1", details="Bridge survey"):
    learner = _create_user(db_session, f"{vpa_id.lower()}@example.com")
    level = _create_level(db_session)
    tr = tr_services.create_training_request(db_session, learner_user_id=learner.id, competency_level_id=level.id)
    vpa = services.create_vpa(
        db_session,
        vpa_id=vpa_id,
        tr_id=tr.tr_id,
        learner_user_id=learner.id,
        competency_level_id=level.id,
        project_details=details,
    )
    return vpa, tr


def _vsrs(db_session):
    return db_session.query(models.ValidationScheduleRequest).all()


def test_create_vpa_defaults(db_session):
    vpa, tr = _create_vpa(db_session)

    assert vpa.status == VPAStatus.PENDING
    assert vpa.requested_date == today()
    assert vpa.response_due == today() + timedelta(days=1)
    assert vpa.tr_id == tr.tr_id


def test_create_vpa_rejects_duplicate_id(db_session):
    vpa, _ = _create_vpa(db_session)

    with pytest.raises(ValidationError):
        services.create_vpa(
            db_session,
            vpa_id=vpa.vpa_id,
            learner_user_id=vpa.learner_user_id,
            competency_level_id=vpa.competency_level_id,
        )


def test_approval_creates_vsr(db_session):
    vpa, tr = _create_vpa(db_session)
    actor = _create_user(db_session, "ops@example.com")

    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=actor.id, changes={"status": VPAStatus.APPROVED})

    vsrs = _vsrs(db_session)
    assert len(vsrs) == 1
    vsr = vsrs[0]
    assert vsr.vsr_id == "VSR01"
    assert vsr.tr_id == tr.tr_id
    assert vsr.status == VSRStatus.PENDING_VALIDATION
    assert vsr.requested_date == today()
    assert vsr.response_due == vsr.requested_date + timedelta(days=1)
    assert vsr.description == "Bridge survey"
    assert vsr.learner_user_id == vpa.learner_user_id


def test_second_approval_for_same_request_resets_vsr(db_session):
    vpa, tr = _create_vpa(db_session)
    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=None, changes={"status": VPAStatus.APPROVED})
    vsr = _vsrs(db_session)[0]
    vsr.status = int(VSRStatus.FAIL)
    vsr.requested_date = today() - timedelta(days=10)
    db_session.flush()

    other = services.create_vpa(
        db_session,
        vpa_id="VPA-2",
        tr_id=tr.tr_id,
        learner_user_id=vpa.learner_user_id,
        competency_level_id=vpa.competency_level_id,
        project_details="Revised survey",
    )
    services.update_vpa(db_session, vpa_pk=other.id, actor_user_id=None, changes={"status": VPAStatus.APPROVED})

    vsrs = _vsrs(db_session)
    assert [v.id for v in vsrs] == [vsr.id]
    assert vsr.status == VSRStatus.PENDING_VALIDATION
    assert vsr.requested_date == today()
    assert vsr.description == "Revised survey"


def test_resaving_approved_vpa_does_not_touch_vsr(db_session):
    vpa, _ = _create_vpa(db_session)
    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=None, changes={"status": VPAStatus.APPROVED})
    vsr = _vsrs(db_session)[0]
    vsr.status = int(VSRStatus.VALIDATION_SCHEDULED)
    db_session.flush()

    services.update_vpa(
        db_session,
        vpa_pk=vpa.id,
        actor_user_id=None,
        changes={"status": VPAStatus.APPROVED, "project_details": "Edited"},
    )

    assert len(_vsrs(db_session)) == 1
    assert vsr.status == VSRStatus.VALIDATION_SCHEDULED


def test_rejection_requires_reason(db_session):
    vpa, _ = _create_vpa(db_session)

    with pytest.raises(ValidationError) as excinfo:
        services.update_vpa(
            db_session,
            vpa_pk=vpa.id,
            actor_user_id=None,
            changes={"status": VPAStatus.REJECTED, "rejection_reason": "   "},
        )

    assert excinfo.value.message == "Rejection reason is required"
    assert excinfo.value.detail == [{"field": "rejection_reason", "reason": "Rejection reason is required"}]


def test_rejection_is_logged_with_reason(db_session):
    vpa, _ = _create_vpa(db_session)
    actor = _create_user(db_session, "trainer@example.com")

    services.update_vpa(
        db_session,
        vpa_pk=vpa.id,
        actor_user_id=actor.id,
        changes={"status": VPAStatus.REJECTED, "rejection_reason": "Scope too small"},
    )

    entries = services.vpa_history(db_session, vpa.vpa_id)
    assert len(entries) == 1
    assert entries[0].status == VPAStatus.REJECTED
    assert entries[0].actor_user_id == actor.id
    assert entries[0].details == {"project_details": "Bridge survey", "rejection_reason": "Scope too small"}
    assert _vsrs(db_session) == []


def test_assignee_is_sticky(db_session):
    vpa, _ = _create_vpa(db_session)
    first = _create_user(db_session, "first@example.com")
    second = _create_user(db_session, "second@example.com")

    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=second.id, changes={"assigned_to": first.id})
    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=second.id, changes={"assigned_to": second.id})

    assert vpa.assigned_to == first.id


def test_response_due_only_follows_requested_date_while_pending(db_session):
    vpa, _ = _create_vpa(db_session)
    custom = today() + timedelta(days=9)

    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=None, changes={"response_due": custom})
    assert vpa.response_due == vpa.requested_date + timedelta(days=1)

    services.update_vpa(
        db_session,
        vpa_pk=vpa.id,
        actor_user_id=None,
        changes={"status": VPAStatus.APPROVED, "response_due": custom},
    )
    assert vpa.response_due == custom


def test_approval_without_training_request_opens_nothing(db_session):
    learner = _create_user(db_session, "solo@example.com")
    level = _create_level(db_session)
    vpa = services.create_vpa(
        db_session, vpa_id="VPA-9", learner_user_id=learner.id, competency_level_id=level.id
    )

    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=None, changes={"status": VPAStatus.APPROVED})

    assert _vsrs(db_session) == []
    assert len(audit_services.list_entries(db_session, entity_type="vpa", entity_id="VPA-9")) == 1


def test_update_missing_vpa(db_session):
    with pytest.raises(NotFoundError):
        services.update_vpa(db_session, vpa_pk="missing", actor_user_id=None, changes={})


def test_failed_vsr_creation_rolls_back_approval(db_session, monkeypatch):
    vpa, _ = _create_vpa(db_session)
    admin = account_models.User(email="admin@example.com", name="Admin", is_superuser=True)
    db_session.add(admin)
    db_session.commit()

    def no_more_ids(db, namespace, *, prefix=None):
        raise GenerationError("Failed to generate VSR ID")

    monkeypatch.setattr(numbering_services, "next_id", no_more_ids)

    result = run_operation(
        db_session,
        lambda: services.update_vpa(
            db_session, vpa_pk=vpa.id, actor_user_id=admin.id, changes={"status": VPAStatus.APPROVED}
        ),
        actor_user_id=admin.id,
        module=PermissionModule.VALIDATION_PROJECT_APPROVAL,
        action=PermissionAction.EDIT,
    )

    assert result.success is False
    assert (result.kind, result.status_code) == ("GenerationError", 503)
    db_session.refresh(vpa)
    assert vpa.status == VPAStatus.PENDING
    assert services.vpa_history(db_session, vpa.vpa_id) == []
    assert _vsrs(db_session) == []


def test_unknown_status_is_a_validation_failure(db_session):
    vpa, _ = _create_vpa(db_session)
    admin = account_models.User(email="root@example.com", name="Root", is_superuser=True)
    db_session.add(admin)
    db_session.commit()

    with pytest.raises(ValidationError):
        services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=admin.id, changes={"status": "approved"})

    result = run_operation(
        db_session,
        lambda: services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=admin.id, changes={"status": 9}),
        actor_user_id=admin.id,
        module=PermissionModule.VALIDATION_PROJECT_APPROVAL,
        action=PermissionAction.EDIT,
    )

    assert (result.success, result.kind, result.status_code) == (False, "ValidationError", 422)
    assert result.detail == [{"field": "status", "reason": "9 is not a valid status"}]
    db_session.refresh(vpa)
    assert vpa.status == VPAStatus.PENDING
