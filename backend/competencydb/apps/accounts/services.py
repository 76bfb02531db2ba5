from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from competencydb.errors import AuthorizationError, NotFoundError, ValidationError
from competencydb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    verify_password,
)
from . import models, schemas
from .models import PermissionAction, PermissionModule

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthenticationError(Exception):
    """Raised when login credentials are invalid or the account is inactive."""


NO_MODULE_ACCESS_MESSAGE = "You do not have permission to access this area"
INSUFFICIENT_PERMISSION_MESSAGE = "You do not have sufficient permissions for this action"


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _normalise_email(value: str) -> str:
    return value.strip().lower()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def get_user_by_id(db: Session, user_id: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_active_user_by_email(db: Session, *, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(
            models.User.email == _normalise_email(email),
            models.User.is_active.is_(True),
        )
        .first()
    )


def create_user(db: Session, data: schemas.UserCreate) -> models.User:
    email = _normalise_email(data.email)
    dup = db.query(models.User).filter(models.User.email == email).first()
    if dup:
        raise ValidationError("A user with this email already exists.")

    if data.role_id and not db.get(models.Role, data.role_id):
        raise NotFoundError("Role not found")

    user = models.User(
        email=email,
        name=data.name.strip(),
        role_id=data.role_id,
        is_active=True,
        is_superuser=data.is_superuser,
        hashed_password=get_password_hash(data.password) if data.password else None,
    )
    db.add(user)
    db.flush()
    return user


def users_with_role(db: Session, role_name: str) -> List[models.User]:
    return (
        db.query(models.User)
        .join(models.Role, models.User.role_id == models.Role.id)
        .filter(models.Role.name == role_name, models.User.is_active.is_(True))
        .order_by(models.User.name.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Roles and permissions
# ---------------------------------------------------------------------------


def get_or_create_role(db: Session, name: str) -> models.Role:
    role = db.query(models.Role).filter(models.Role.name == name).first()
    if role:
        return role
    role = models.Role(name=name)
    db.add(role)
    db.flush()
    return role


def set_role_permissions(
    db: Session,
    *,
    role: models.Role,
    module: PermissionModule,
    actions: Iterable[PermissionAction | str],
) -> models.RolePermission:
    """
    Replace the permission flags of `role` for `module` with exactly `actions`.
    """
    granted = {PermissionAction(a) for a in actions}
    perm = (
        db.query(models.RolePermission)
        .filter(
            models.RolePermission.role_id == role.id,
            models.RolePermission.module == PermissionModule(module),
        )
        .first()
    )
    if perm is None:
        perm = models.RolePermission(role_id=role.id, module=PermissionModule(module))
        db.add(perm)

    perm.can_list = PermissionAction.LIST in granted
    perm.can_add = PermissionAction.ADD in granted
    perm.can_edit = PermissionAction.EDIT in granted
    perm.can_delete = PermissionAction.DELETE in granted
    db.flush()
    return perm


def get_user_permissions(db: Session, *, user_id: str) -> Dict[PermissionModule, models.RolePermission]:
    user = get_user_by_id(db, user_id)
    if not user or not user.role_id:
        return {}

    rows = (
        db.query(models.RolePermission)
        .filter(models.RolePermission.role_id == user.role_id)
        .all()
    )
    return {PermissionModule(row.module): row for row in rows}


def ensure_permission(
    db: Session,
    *,
    user_id: Optional[str],
    module: PermissionModule | str,
    action: PermissionAction | str,
) -> None:
    """
    Raise AuthorizationError unless the user's role grants `action` on `module`.

    Superusers always pass. Inactive or unknown users never do.
    """
    user = get_user_by_id(db, user_id) if user_id else None
    if user is None or not user.is_active:
        raise AuthorizationError(NO_MODULE_ACCESS_MESSAGE)
    if user.is_superuser:
        return

    permissions = get_user_permissions(db, user_id=user.id)
    perm = permissions.get(PermissionModule(module))
    if perm is None:
        raise AuthorizationError(NO_MODULE_ACCESS_MESSAGE)
    if not perm.allows(PermissionAction(action)):
        logger.info(
            "Permission denied",
            extra={"user_id": user.id, "permission_module": str(module), "action": str(action)},
        )
        raise AuthorizationError(INSUFFICIENT_PERMISSION_MESSAGE)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def authenticate_user(db: Session, *, login_req: schemas.LoginRequest) -> models.User:
    user = get_active_user_by_email(db, email=login_req.email)
    if user is None or not verify_password(login_req.password, user.hashed_password):
        raise AuthenticationError("Invalid credentials.")
    return user


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    """
    Create a JWT access token for the user.

    Returns (token_string, expires_in_seconds).
    """
    expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "role": user.role_name,
        "is_superuser": bool(user.is_superuser),
    }
    token = create_access_token(data=payload, expires_delta=expires_delta)
    return token, int(ACCESS_TOKEN_EXPIRE_MINUTES * 60)
