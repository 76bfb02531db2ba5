# backend/competencydb/apps/accounts/models.py

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7, utcnow


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class PermissionModule(str, enum.Enum):
    ROLES = "roles"
    USERS = "users"
    ACTIVITY_LOG = "activity_log"
    COMPETENCIES = "competencies"
    TRAINING_BATCH = "training_batch"
    TRAINING_REQUEST = "training_request"
    VALIDATION_PROJECT_APPROVAL = "validation_project_approval"
    VALIDATION_SCHEDULE_REQUEST = "validation_schedule_request"
    PROJECT_ASSIGNMENT_REQUEST = "project_assignment_request"


class PermissionAction(str, enum.Enum):
    LIST = "list"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"


# Role names the validation workflow looks up when offering VSR assignees.
OPS_ROLE_NAME = "ops"
TRAINER_ROLE_NAME = "trainer"


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    name = Column(String(64), nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    users = relationship("User", back_populates="role")

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name}>"


class RolePermission(Base):
    """
    One row per (role, module). Missing row means no access to the module.
    """

    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "module", name="uq_role_permissions_role_module"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    module = Column(
        Enum(PermissionModule, name="permission_module_enum", native_enum=False),
        nullable=False,
    )
    can_list = Column(Boolean, nullable=False, default=False)
    can_add = Column(Boolean, nullable=False, default=False)
    can_edit = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    role = relationship("Role", back_populates="permissions")

    def allows(self, action: PermissionAction) -> bool:
        return bool(getattr(self, f"can_{PermissionAction(action).value}"))


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_role_active", "role_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_superuser = Column(Boolean, nullable=False, default=False)

    role_id = Column(String(36), ForeignKey("roles.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    role = relationship("Role", back_populates="users", lazy="joined")

    @property
    def role_name(self) -> str | None:
        return self.role.name if self.role else None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
