from __future__ import annotations

from datetime import timedelta

import pytest

from competencydb.errors import NotFoundError, ValidationError
from competencydb.utils.identifiers import today
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts import services as account_services
from competencydb.apps.accounts.models import OPS_ROLE_NAME, TRAINER_ROLE_NAME
from competencydb.apps.competencies import models as competency_models
from competencydb.apps.training_requests import services as tr_services
from competencydb.apps.training_requests.models import TrainingRequestStatus
from competencydb.apps.validation import services
from competencydb.apps.validation.models import VPAStatus, VSRStatus


def _create_user(db_session, email: str, *, role: str | None = None) -> account_models.User:
    user = account_models.User(email=email, name=email.split("@")[0])
    if role:
        user.role_id = account_services.get_or_create_role(db_session, role).id
    db_session.add(user)
    db_session.flush()
    return user


def _create_level(db_session) -> competency_models.CompetencyLevel:
    competency = competency_models.Competency(name="Welding")
    db_session.add(competency)
    db_session.flush()
    level = competency_models.CompetencyLevel(competency_id=competency.id, name="Expert")
    db_session.add(level)
    db_session.flush()
    return level


def _approved_pair(db_session):
    """Approve a VPA and return it with the VSR and TR it produced."""
    learner = _create_user(db_session, "learner@example.com")
    level = _create_level(db_session)
    tr = tr_services.create_training_request(db_session, learner_user_id=learner.id, competency_level_id=level.id)
    tr_services.set_status(db_session, tr, TrainingRequestStatus.SESSIONS_COMPLETED)
    vpa = services.create_vpa(
        db_session,
        vpa_id="VPA-7",
        tr_id=tr.tr_id,
        learner_user_id=learner.id,
        competency_level_id=level.id,
        project_details="Pipe joint",
    )
    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=None, changes={"status": VPAStatus.APPROVED})
    vsr = services.list_vsrs(db_session, tr_id=tr.tr_id)[0]
    return vpa, vsr, tr


def test_pass_completes_training_request(db_session):
    _, vsr, tr = _approved_pair(db_session)

    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"status": VSRStatus.PASS})

    assert tr.status == TrainingRequestStatus.TRAINING_COMPLETED


def test_pass_fires_only_on_the_change_into_pass(db_session):
    _, vsr, tr = _approved_pair(db_session)
    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"status": VSRStatus.PASS})

    tr.status = int(TrainingRequestStatus.ON_HOLD)
    db_session.flush()
    services.update_vsr(
        db_session,
        vsr_pk=vsr.id,
        actor_user_id=None,
        changes={"status": VSRStatus.PASS, "description": "Re-saved"},
    )

    assert tr.status == TrainingRequestStatus.ON_HOLD
    assert len(services.vsr_history(db_session, vsr.vsr_id)) == 2


def test_fail_sends_project_back_for_revalidation(db_session):
    vpa, vsr, _ = _approved_pair(db_session)
    validator = _create_user(db_session, "validator@example.com")

    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=validator.id, changes={"status": VSRStatus.FAIL})

    assert vpa.status == VPAStatus.RESUBMIT_FOR_REVALIDATION
    history = services.vpa_history(db_session, vpa.vpa_id)
    assert [entry.status for entry in history] == [VPAStatus.APPROVED, VPAStatus.RESUBMIT_FOR_REVALIDATION]
    assert history[-1].actor_user_id == validator.id
    assert history[-1].details["triggered_by"] == vsr.vsr_id
    assert history[-1].details["rejection_reason"] is None


def test_reapproval_after_fail_reopens_same_vsr(db_session):
    vpa, vsr, _ = _approved_pair(db_session)
    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"status": VSRStatus.FAIL})

    services.update_vpa(db_session, vpa_pk=vpa.id, actor_user_id=None, changes={"status": VPAStatus.APPROVED})

    assert vsr.status == VSRStatus.PENDING_VALIDATION
    assert len(services.list_vsrs(db_session)) == 1


def test_response_due_tracks_requested_date_until_closed(db_session):
    _, vsr, _ = _approved_pair(db_session)
    vsr.requested_date = today() - timedelta(days=4)

    services.update_vsr(
        db_session,
        vsr_pk=vsr.id,
        actor_user_id=None,
        changes={"status": VSRStatus.VALIDATION_SCHEDULED, "scheduled_date": today()},
    )
    assert vsr.response_due == today() - timedelta(days=3)
    assert vsr.scheduled_date == today()

    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"status": VSRStatus.PASS})
    vsr.requested_date = today()
    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"description": "Closed"})
    assert vsr.response_due == today() - timedelta(days=3)


def test_vsr_date_defaults():
    requested = today()

    open_dates = services.vsr_date_defaults(requested, int(VSRStatus.PENDING_REVALIDATION), False, None)
    assert open_dates == {
        "response_due": requested + timedelta(days=1),
        "no_follow_up_date": requested + timedelta(days=3),
    }

    stored = requested - timedelta(days=20)
    closed_dates = services.vsr_date_defaults(requested, int(VSRStatus.FAIL), True, stored)
    assert closed_dates == {"response_due": stored, "no_follow_up_date": None}


def test_create_vsr_uses_generated_ids(db_session):
    learner = _create_user(db_session, "direct@example.com")
    level = _create_level(db_session)

    first = services.create_vsr(db_session, learner_user_id=learner.id, competency_level_id=level.id)
    second = services.create_vsr(db_session, learner_user_id=learner.id, competency_level_id=level.id)

    assert (first.vsr_id, second.vsr_id) == ("VSR01", "VSR02")
    assert first.status == VSRStatus.PENDING_VALIDATION
    assert first.response_due == today() + timedelta(days=1)


def test_delete_vsr_purges_history(db_session):
    _, vsr, _ = _approved_pair(db_session)
    services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"status": VSRStatus.PASS})
    vsr_pk, vsr_id = vsr.id, vsr.vsr_id

    assert services.get_vsr_by_vsr_id(db_session, vsr_id).id == vsr_pk
    assert services.delete_vsr(db_session, vsr_id=vsr_id) == vsr_id

    assert services.vsr_history(db_session, vsr_id) == []
    with pytest.raises(NotFoundError):
        services.get_vsr(db_session, vsr_pk)
    with pytest.raises(NotFoundError):
        services.delete_vsr(db_session, vsr_id=vsr_id)


def test_eligible_assignees_are_ops_and_level_trainers(db_session):
    _, vsr, _ = _approved_pair(db_session)
    ops = _create_user(db_session, "zed@example.com", role=OPS_ROLE_NAME)
    trainer = _create_user(db_session, "amy@example.com", role=TRAINER_ROLE_NAME)
    _create_user(db_session, "bob@example.com", role=TRAINER_ROLE_NAME)
    level = db_session.get(competency_models.CompetencyLevel, vsr.competency_level_id)
    db_session.add(competency_models.CompetencyTrainer(competency_id=level.competency_id, trainer_user_id=trainer.id))
    db_session.flush()

    eligible = services.eligible_vsr_assignees(db_session, vsr)

    assert [user.id for user in eligible] == [trainer.id, ops.id]


def test_unknown_vsr_status_is_rejected(db_session):
    _, vsr, _ = _approved_pair(db_session)

    with pytest.raises(ValidationError):
        services.update_vsr(db_session, vsr_pk=vsr.id, actor_user_id=None, changes={"status": 7})

    assert vsr.status == VSRStatus.PENDING_VALIDATION
