from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from competencydb.utils.identifiers import utcnow
from competencydb.apps.accounts import models as account_models
from competencydb.apps.audit import models, services
from competencydb.apps.validation.models import VSRStatus


def _create_user(db_session, email="auditor@example.com") -> account_models.User:
    user = account_models.User(email=email, name="Auditor")
    db_session.add(user)
    db_session.flush()
    return user


def test_append_entry_is_listed_in_order(db_session):
    user = _create_user(db_session)
    services.append_entry(db_session, entity_type="vsr", entity_id="VSR01", status=0, actor_user_id=user.id)
    services.append_entry(
        db_session,
        entity_type="vsr",
        entity_id="VSR01",
        status=2,
        actor_user_id=None,
        details={"scheduled_date": date(2026, 3, 4)},
    )
    services.append_entry(db_session, entity_type="vsr", entity_id="VSR02", status=4, actor_user_id=None)

    entries = services.list_entries(db_session, entity_type="vsr", entity_id="VSR01")

    assert [entry.status for entry in entries] == [0, 2]
    assert entries[0].actor_user_id == user.id
    assert entries[1].details == {"scheduled_date": "2026-03-04"}


def test_purge_entity_log_only_touches_that_entity(db_session):
    for status in (0, 1, 3):
        services.append_entry(db_session, entity_type="vsr", entity_id="VSR05", status=status, actor_user_id=None)
    services.append_entry(db_session, entity_type="vpa", entity_id="VSR05", status=1, actor_user_id=None)

    assert services.purge_entity_log(db_session, entity_type="vsr", entity_id="VSR05") == 3
    assert services.list_entries(db_session, entity_type="vsr", entity_id="VSR05") == []
    assert len(services.list_entries(db_session, entity_type="vpa", entity_id="VSR05")) == 1


def test_record_activity_rejects_unknown_action(db_session):
    user = _create_user(db_session)

    with pytest.raises(ValueError):
        services.record_activity(db_session, user_id=user.id, module="training_batch", action="list")

    assert db_session.query(models.ActivityLogEntry).count() == 0


def test_list_activity_filters(db_session):
    alice = _create_user(db_session, "alice@example.com")
    bob = _create_user(db_session, "bob@example.com")
    services.record_activity(db_session, user_id=alice.id, module="training_batch", action="add", data={"id": "b1"})
    services.record_activity(db_session, user_id=bob.id, module="training_batch", action="edit")
    services.record_activity(db_session, user_id=alice.id, module="vsr", action="delete")

    assert len(services.list_activity(db_session, module="training_batch")) == 2
    assert {row.module for row in services.list_activity(db_session, user_id=alice.id)} == {"training_batch", "vsr"}
    assert services.list_activity(db_session, start=utcnow() + timedelta(hours=1)) == []
    assert len(services.list_activity(db_session, limit=1)) == 1


def test_record_activity_stores_plain_json(db_session):
    user = _create_user(db_session)

    entry = services.record_activity(
        db_session,
        user_id=user.id,
        module="validation_schedule_request",
        action="edit",
        data={
            "status": VSRStatus.PASS,
            "scheduled_at": datetime(2026, 3, 4, 9, 30),
            "score": Decimal("2.5"),
            "changes": ({"field": "assigned_to"},),
        },
    )
    db_session.commit()
    db_session.expire_all()

    stored = db_session.get(models.ActivityLogEntry, entry.id)
    assert stored.data == {
        "status": 4,
        "scheduled_at": "2026-03-04T09:30:00",
        "score": 2.5,
        "changes": [{"field": "assigned_to"}],
    }
