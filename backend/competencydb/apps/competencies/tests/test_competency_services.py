from __future__ import annotations

import pytest

from competencydb.errors import NotFoundError, ValidationError
from competencydb.apps.accounts import models as account_models
from competencydb.apps.competencies import schemas, services


def _create_trainer(db_session) -> account_models.User:
    user = account_models.User(email="trainer@example.com", name="Trainer")
    db_session.add(user)
    db_session.flush()
    return user


def test_create_competency_with_levels_and_trainers(db_session):
    trainer = _create_trainer(db_session)

    competency = services.create_competency(
        db_session,
        schemas.CompetencyCreate(
            name="  Scaffolding ",
            levels=[{"name": "Basic"}, {"name": "Advanced"}],
            trainer_user_ids=[trainer.id, trainer.id],
        ),
    )

    assert competency.name == "Scaffolding"
    level_ids = [level.id for level in services.list_competencies(db_session)[0].levels]
    assert len(level_ids) == 2
    assert services.trainers_for_level(db_session, level_ids[0]) == [trainer.id]


def test_duplicate_level_names_are_rejected(db_session):
    with pytest.raises(ValidationError):
        services.create_competency(
            db_session,
            schemas.CompetencyCreate(name="Rigging", levels=[{"name": "Basic"}, {"name": "Basic "}]),
        )


def test_unknown_lookups(db_session):
    with pytest.raises(NotFoundError):
        services.get_level(db_session, "missing")
    with pytest.raises(NotFoundError):
        services.create_competency(db_session, schemas.CompetencyCreate(name="Cranes", trainer_user_ids=["ghost"]))
    assert services.trainers_for_level(db_session, None) == []
