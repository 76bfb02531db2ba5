from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import PermissionModule


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)
    password: Optional[str] = None
    role_id: Optional[str] = None
    is_superuser: bool = False


class UserRead(BaseModel):
    id: str
    email: str
    name: str
    is_active: bool
    is_superuser: bool
    role_id: Optional[str] = None
    role_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# ROLES / PERMISSIONS
# ---------------------------------------------------------------------------


class PermissionSet(BaseModel):
    module: PermissionModule
    can_list: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False

    class Config:
        from_attributes = True


class RoleRead(BaseModel):
    id: str
    name: str
    permissions: List[PermissionSet] = []

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
