from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from competencydb.errors import NotFoundError, ValidationError
from competencydb.operations import run_operation
from competencydb.utils.identifiers import today
from competencydb.apps.accounts import models as account_models
from competencydb.apps.accounts import services as account_services
from competencydb.apps.accounts.models import PermissionAction, PermissionModule
from competencydb.apps.audit import services as audit_services
from competencydb.apps.competencies import models as competency_models
from competencydb.apps.project_assignment import schemas, services
from competencydb.apps.project_assignment.models import PARStatus


def _create_user(db_session, email: str, *, role=None) -> account_models.User:
    user = account_models.User(email=email, name=email.split("@")[0], role_id=role.id if role else None)
    db_session.add(user)
    db_session.flush()
    return user


def _create_level(db_session, name="Surveying") -> competency_models.CompetencyLevel:
    competency = competency_models.Competency(name=name)
    db_session.add(competency)
    db_session.flush()
    level = competency_models.CompetencyLevel(competency_id=competency.id, name="Basic")
    db_session.add(level)
    db_session.flush()
    return level


def _create_par(db_session, *, email="learner@example.com", level=None):
    learner = _create_user(db_session, email)
    level = level or _create_level(db_session)
    return services.create_par(db_session, learner_user_id=learner.id, competency_level_id=level.id)


def test_create_par_defaults(db_session):
    first = _create_par(db_session)
    second = _create_par(db_session, email="other@example.com")

    assert (first.par_id, second.par_id) == ("PAR01", "PAR02")
    assert first.status == PARStatus.NEW
    assert first.requested_date == today()
    assert first.response_due == today() + timedelta(days=1)
    assert first.assigned_to is None


def test_create_par_requires_known_learner_and_level(db_session):
    level = _create_level(db_session)
    learner = _create_user(db_session, "known@example.com")

    with pytest.raises(NotFoundError):
        services.create_par(db_session, learner_user_id="missing", competency_level_id=level.id)
    with pytest.raises(NotFoundError):
        services.create_par(db_session, learner_user_id=learner.id, competency_level_id="missing")


def test_update_par_applies_only_given_fields(db_session):
    par = _create_par(db_session)
    par.project_name = "Harbour crane"
    assignee = _create_user(db_session, "ops@example.com")

    services.update_par(
        db_session,
        par_pk=par.id,
        changes={
            "status": PARStatus.PROJECT_ASSIGNED,
            "assigned_to": assignee.id,
            "definite_answer": False,
            "no_follow_up_date": datetime(2026, 5, 1, 16, 45),
            "follow_up_date": date(2026, 5, 8),
        },
    )

    assert par.status == PARStatus.PROJECT_ASSIGNED
    assert par.assigned_to == assignee.id
    assert par.project_name == "Harbour crane"
    assert par.definite_answer is False
    assert par.no_follow_up_date == date(2026, 5, 1)
    assert par.follow_up_date == date(2026, 5, 8)


def test_update_par_assignment_is_explicit(db_session):
    par = _create_par(db_session)
    assignee = _create_user(db_session, "ops@example.com")
    services.update_par(db_session, par_pk=par.id, changes={"assigned_to": assignee.id})

    services.update_par(db_session, par_pk=par.id, changes={"description": "Still looking"})
    assert par.assigned_to == assignee.id

    services.update_par(db_session, par_pk=par.id, changes={"assigned_to": None})
    assert par.assigned_to is None

    with pytest.raises(NotFoundError):
        services.update_par(db_session, par_pk=par.id, changes={"assigned_to": "nobody"})


def test_update_par_rejects_unknown_status(db_session):
    par = _create_par(db_session)

    with pytest.raises(ValidationError):
        services.update_par(db_session, par_pk=par.id, changes={"status": 5})

    assert par.status == PARStatus.NEW


def test_list_pars_filters(db_session):
    surveying = _create_level(db_session, "Surveying")
    rigging = _create_level(db_session, "Rigging")
    first = _create_par(db_session, email="a@example.com", level=surveying)
    second = _create_par(db_session, email="b@example.com", level=rigging)
    services.update_par(db_session, par_pk=second.id, changes={"status": PARStatus.NO_PROJECT_MATCH})

    assert {p.par_id for p in services.list_pars(db_session)} == {first.par_id, second.par_id}
    assert [p.par_id for p in services.list_pars(db_session, status=PARStatus.NO_PROJECT_MATCH)] == [second.par_id]
    assert [p.par_id for p in services.list_pars(db_session, competency_id=surveying.competency_id)] == [
        first.par_id
    ]
    assert services.get_par_by_par_id(db_session, second.par_id).id == second.id
    with pytest.raises(NotFoundError):
        services.get_par_by_par_id(db_session, "PAR99")


def test_par_read_uses_configured_labels(db_session, monkeypatch):
    par = _create_par(db_session)
    par.status = int(PARStatus.REJECTED_PROJECT)

    assert schemas.PARRead.model_validate(par).status_label == "Rejected Project"

    monkeypatch.setenv("PAR_STATUS", "Open,Waiting,Matched,Declined,Unmatched")
    assert schemas.PARRead.model_validate(par).status_label == "Declined"


def test_edit_is_permission_checked_and_logged(db_session):
    par = _create_par(db_session)
    role = account_services.get_or_create_role(db_session, "coordinator")
    account_services.set_role_permissions(
        db_session,
        role=role,
        module=PermissionModule.PROJECT_ASSIGNMENT_REQUEST,
        actions=[PermissionAction.LIST, PermissionAction.EDIT],
    )
    editor = _create_user(db_session, "editor@example.com", role=role)
    outsider = _create_user(db_session, "outsider@example.com")
    db_session.commit()
    changes = {"status": PARStatus.PENDING_PROJECT_ASSIGNMENT, "follow_up_date": date(2026, 6, 1)}

    def _edit(actor):
        return run_operation(
            db_session,
            lambda: services.update_par(db_session, par_pk=par.id, changes=changes),
            actor_user_id=actor.id,
            module=PermissionModule.PROJECT_ASSIGNMENT_REQUEST,
            action=PermissionAction.EDIT,
            activity_data=lambda row: services.edit_activity(row, changes),
        )

    denied = _edit(outsider)
    assert (denied.success, denied.status_code) == (False, 403)
    assert par.status == PARStatus.NEW

    allowed = _edit(editor)
    assert allowed.success is True
    assert par.status == PARStatus.PENDING_PROJECT_ASSIGNMENT

    [entry] = audit_services.list_activity(db_session, module="project_assignment_request")
    assert entry.user_id == editor.id
    assert entry.action == "edit"
    assert entry.data == {
        "par_id": par.par_id,
        "learner_id": par.learner_user_id,
        "learner_name": "learner",
        "competency_level_id": par.competency_level_id,
        "status": 1,
        "follow_up_date": "2026-06-01",
    }
