from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from competencydb.database import get_db, get_read_db
from competencydb.security import get_current_active_user, require_permission

from . import models, schemas, services


router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# LOGIN
# ---------------------------------------------------------------------------


@router.post(
    "/login",
    response_model=schemas.Token,
    summary="Login with email and password",
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    try:
        user = services.authenticate_user(db, login_req=payload)
    except services.AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc) or "Incorrect email or password.",
        )

    token, expires_in = services.issue_access_token_for_user(user)
    return schemas.Token(access_token=token, expires_in=expires_in, user=user)


@router.get("/me", response_model=schemas.UserRead)
def read_me(current_user: models.User = Depends(get_current_active_user)):
    return current_user


@router.get("/me/permissions", response_model=List[schemas.PermissionSet])
def read_my_permissions(
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(get_current_active_user),
):
    return list(services.get_user_permissions(db, user_id=current_user.id).values())


@router.get("/roles", response_model=List[schemas.RoleRead])
def list_roles(
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(
        require_permission(models.PermissionModule.ROLES, models.PermissionAction.LIST)
    ),
):
    return db.query(models.Role).order_by(models.Role.name.asc()).all()
