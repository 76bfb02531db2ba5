from __future__ import annotations

import pytest

from competencydb.errors import AuthorizationError, ValidationError
from competencydb.security import decode_access_token
from competencydb.apps.accounts import models, schemas, services
from competencydb.apps.accounts.models import PermissionAction, PermissionModule


def _create_user(db_session, *, email="user@corp.io", role=None, **kwargs) -> models.User:
    user = models.User(email=email, name="User", role_id=role.id if role else None, **kwargs)
    db_session.add(user)
    db_session.flush()
    return user


def test_user_without_module_row_is_denied(db_session):
    role = services.get_or_create_role(db_session, "learner")
    user = _create_user(db_session, role=role)

    with pytest.raises(AuthorizationError) as excinfo:
        services.ensure_permission(
            db_session,
            user_id=user.id,
            module=PermissionModule.TRAINING_BATCH,
            action=PermissionAction.LIST,
        )

    assert excinfo.value.message == services.NO_MODULE_ACCESS_MESSAGE


def test_action_flags_are_checked_individually(db_session):
    role = services.get_or_create_role(db_session, "trainer")
    services.set_role_permissions(
        db_session,
        role=role,
        module=PermissionModule.TRAINING_BATCH,
        actions=[PermissionAction.LIST, "edit"],
    )
    user = _create_user(db_session, role=role)

    services.ensure_permission(
        db_session, user_id=user.id, module="training_batch", action=PermissionAction.EDIT
    )
    with pytest.raises(AuthorizationError) as excinfo:
        services.ensure_permission(
            db_session,
            user_id=user.id,
            module=PermissionModule.TRAINING_BATCH,
            action=PermissionAction.DELETE,
        )

    assert excinfo.value.message == services.INSUFFICIENT_PERMISSION_MESSAGE


def test_set_role_permissions_replaces_flags(db_session):
    role = services.get_or_create_role(db_session, "ops")
    services.set_role_permissions(
        db_session, role=role, module=PermissionModule.TRAINING_REQUEST, actions=["list", "add", "edit"]
    )
    perm = services.set_role_permissions(
        db_session, role=role, module=PermissionModule.TRAINING_REQUEST, actions=["list"]
    )

    assert (perm.can_list, perm.can_add, perm.can_edit, perm.can_delete) == (True, False, False, False)
    assert db_session.query(models.RolePermission).count() == 1


def test_superuser_and_inactive_users(db_session):
    admin = _create_user(db_session, email="admin@corp.io", is_superuser=True)
    retired = _create_user(db_session, email="retired@corp.io", is_superuser=True, is_active=False)

    services.ensure_permission(
        db_session,
        user_id=admin.id,
        module=PermissionModule.VALIDATION_SCHEDULE_REQUEST,
        action=PermissionAction.DELETE,
    )
    for user_id in (retired.id, None, "ghost"):
        with pytest.raises(AuthorizationError):
            services.ensure_permission(
                db_session,
                user_id=user_id,
                module=PermissionModule.VALIDATION_SCHEDULE_REQUEST,
                action=PermissionAction.LIST,
            )


def test_create_user_and_login(db_session):
    user = services.create_user(
        db_session,
        schemas.UserCreate(email=" Trainer@Corp.io ", name="Trainer", password="s3cret-pass"),
    )
    assert user.email == "trainer@corp.io"
    assert user.hashed_password != "s3cret-pass"

    with pytest.raises(ValidationError):
        services.create_user(db_session, schemas.UserCreate(email="trainer@corp.io", name="Again"))

    found = services.authenticate_user(
        db_session, login_req=schemas.LoginRequest(email="TRAINER@corp.io", password="s3cret-pass")
    )
    assert found.id == user.id

    with pytest.raises(services.AuthenticationError):
        services.authenticate_user(
            db_session, login_req=schemas.LoginRequest(email="trainer@corp.io", password="wrong")
        )

    token, expires_in = services.issue_access_token_for_user(user)
    assert expires_in > 0
    assert decode_access_token(token) == user.id
    assert decode_access_token(token + "x") is None
