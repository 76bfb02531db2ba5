from __future__ import annotations

from datetime import timedelta

import pytest

from competencydb.errors import NotFoundError, ValidationError
from competencydb.utils.identifiers import today
from competencydb.apps.accounts import models as account_models
from competencydb.apps.competencies import models as competency_models
from competencydb.apps.training_requests import services
from competencydb.apps.training_requests.models import TrainingRequestStatus
from competencydb.apps.training_requests.schemas import TrainingRequestRead


def _create_user(db_session, email: str) -> account_models.User:
    user = account_models.User(email=email, name=email.split("@")[0])
    db_session.add(user)
    db_session.flush()
    return user


def _create_level(db_session) -> competency_models.CompetencyLevel:
    competency = competency_models.Competency(name="Rigging")
    db_session.add(competency)
    db_session.flush()
    level = competency_models.CompetencyLevel(competency_id=competency.id, name="Competent")
    db_session.add(level)
    db_session.flush()
    return level


def test_create_training_request_assigns_sequential_ids(db_session):
    level = _create_level(db_session)
    first = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "a@example.com").id,
        competency_level_id=level.id,
    )
    second = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "b@example.com").id,
        competency_level_id=level.id,
    )

    assert (first.tr_id, second.tr_id) == ("TR01", "TR02")
    assert first.status == TrainingRequestStatus.NOT_STARTED
    assert first.requested_date == today()
    assert first.response_due == today() + timedelta(days=1)


def test_create_training_request_rejects_duplicates_and_unknown_references(db_session):
    level = _create_level(db_session)
    learner = _create_user(db_session, "dup@example.com")
    services.create_training_request(db_session, learner_user_id=learner.id, competency_level_id=level.id)

    with pytest.raises(ValidationError) as excinfo:
        services.create_training_request(db_session, learner_user_id=learner.id, competency_level_id=level.id)
    assert excinfo.value.message == services.DUPLICATE_REQUEST_MESSAGE

    with pytest.raises(NotFoundError):
        services.create_training_request(db_session, learner_user_id="nobody", competency_level_id=level.id)
    with pytest.raises(NotFoundError):
        services.create_training_request(db_session, learner_user_id=learner.id, competency_level_id="nowhere")


def test_set_status_stamps_in_queue_date_once(db_session):
    level = _create_level(db_session)
    tr = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "q@example.com").id,
        competency_level_id=level.id,
    )
    assert tr.in_queue_date is None

    services.set_status(db_session, tr, TrainingRequestStatus.IN_QUEUE)
    stamped = tr.in_queue_date
    assert stamped == today()

    tr.in_queue_date = stamped - timedelta(days=5)
    services.set_status(db_session, tr, TrainingRequestStatus.IN_QUEUE)
    assert tr.in_queue_date == stamped - timedelta(days=5)


def test_update_training_request_keeps_first_assignee(db_session):
    level = _create_level(db_session)
    ops_a = _create_user(db_session, "ops-a@example.com")
    ops_b = _create_user(db_session, "ops-b@example.com")
    tr = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "l@example.com").id,
        competency_level_id=level.id,
    )

    services.update_training_request(db_session, tr=tr, actor_user_id=ops_a.id, changes={"notes": "called"})
    assert tr.assigned_to == ops_a.id

    services.update_training_request(
        db_session,
        tr=tr,
        actor_user_id=ops_b.id,
        changes={"assigned_to": ops_b.id, "status": TrainingRequestStatus.IN_QUEUE},
    )
    assert tr.assigned_to == ops_a.id
    assert tr.status == TrainingRequestStatus.IN_QUEUE
    assert tr.notes == "called"


def test_update_training_request_tracks_follow_up_dates(db_session):
    level = _create_level(db_session)
    tr = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "f@example.com").id,
        competency_level_id=level.id,
    )

    services.update_training_request(db_session, tr=tr, actor_user_id=None, changes={"definite_answer": False})
    assert tr.no_follow_up_date == tr.requested_date + timedelta(days=3)

    services.update_training_request(db_session, tr=tr, actor_user_id=None, changes={"definite_answer": True})
    assert tr.no_follow_up_date is None


def test_update_training_request_rejects_bad_on_hold_party(db_session):
    level = _create_level(db_session)
    tr = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "h@example.com").id,
        competency_level_id=level.id,
    )

    with pytest.raises(ValidationError):
        services.update_training_request(db_session, tr=tr, actor_user_id=None, changes={"on_hold_by": 4})


def test_read_schema_exposes_configured_label(db_session, monkeypatch):
    level = _create_level(db_session)
    tr = services.create_training_request(
        db_session,
        learner_user_id=_create_user(db_session, "s@example.com").id,
        competency_level_id=level.id,
    )
    services.set_status(db_session, tr, TrainingRequestStatus.TRAINING_COMPLETED)

    assert TrainingRequestRead.model_validate(tr).status_label == "Training Completed"

    monkeypatch.setenv("TRAINING_REQUEST_STATUS", "Open,Queued")
    assert TrainingRequestRead.model_validate(tr).status_label == "Unknown"


def test_list_training_requests_filters(db_session):
    level = _create_level(db_session)
    learner = _create_user(db_session, "list@example.com")
    tr = services.create_training_request(db_session, learner_user_id=learner.id, competency_level_id=level.id)
    services.set_status(db_session, tr, TrainingRequestStatus.IN_QUEUE)

    assert services.list_training_requests(db_session, status=TrainingRequestStatus.IN_QUEUE) == [tr]
    assert services.list_training_requests(db_session, status=TrainingRequestStatus.ON_HOLD) == []
    assert services.find_by_tr_id(db_session, tr.tr_id) is tr
    assert services.find_by_tr_id(db_session, None) is None
