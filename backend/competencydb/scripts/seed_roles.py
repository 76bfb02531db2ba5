"""
Seed the default roles with their module permissions, and optionally a
superuser.

Usage (from backend/):
  SEED_ADMIN_EMAIL=admin@example.com SEED_ADMIN_PASSWORD=... \
    python -m competencydb.scripts.seed_roles
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from competencydb.database import WriteSessionLocal
from competencydb.apps.accounts import models, schemas, services
from competencydb.apps.accounts.models import PermissionAction, PermissionModule

logger = logging.getLogger(__name__)

ALL = (PermissionAction.LIST, PermissionAction.ADD, PermissionAction.EDIT, PermissionAction.DELETE)
READ = (PermissionAction.LIST,)
READ_EDIT = (PermissionAction.LIST, PermissionAction.EDIT)

DEFAULT_ROLES: Dict[str, Dict[PermissionModule, Iterable[PermissionAction]]] = {
    "admin": {module: ALL for module in PermissionModule},
    models.OPS_ROLE_NAME: {
        PermissionModule.COMPETENCIES: READ,
        PermissionModule.TRAINING_REQUEST: ALL,
        PermissionModule.TRAINING_BATCH: ALL,
        PermissionModule.VALIDATION_PROJECT_APPROVAL: ALL,
        PermissionModule.VALIDATION_SCHEDULE_REQUEST: ALL,
        PermissionModule.PROJECT_ASSIGNMENT_REQUEST: ALL,
        PermissionModule.ACTIVITY_LOG: READ,
    },
    models.TRAINER_ROLE_NAME: {
        PermissionModule.COMPETENCIES: READ,
        PermissionModule.TRAINING_REQUEST: READ,
        PermissionModule.TRAINING_BATCH: READ_EDIT,
        PermissionModule.VALIDATION_PROJECT_APPROVAL: READ_EDIT,
        PermissionModule.VALIDATION_SCHEDULE_REQUEST: READ_EDIT,
    },
    "learner": {
        PermissionModule.COMPETENCIES: READ,
        PermissionModule.TRAINING_REQUEST: (PermissionAction.LIST, PermissionAction.ADD),
    },
}


def ensure_default_roles(db: Session) -> Dict[str, models.Role]:
    roles: Dict[str, models.Role] = {}
    for name, grants in DEFAULT_ROLES.items():
        role = services.get_or_create_role(db, name)
        for module, actions in grants.items():
            services.set_role_permissions(db, role=role, module=module, actions=actions)
        roles[name] = role
    return roles


def ensure_superuser(db: Session, *, email: str, password: str, name: str) -> models.User:
    existing = services.get_active_user_by_email(db, email=email)
    if existing:
        existing.is_superuser = True
        db.add(existing)
        db.flush()
        return existing
    return services.create_user(
        db,
        schemas.UserCreate(email=email, name=name, password=password, is_superuser=True),
    )


def main() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    email: Optional[str] = os.getenv("SEED_ADMIN_EMAIL")
    password: Optional[str] = os.getenv("SEED_ADMIN_PASSWORD")

    db = WriteSessionLocal()
    try:
        roles = ensure_default_roles(db)
        if email and password:
            user = ensure_superuser(db, email=email, password=password, name=os.getenv("SEED_ADMIN_NAME", "Administrator"))
            logger.info("Superuser ready", extra={"email": user.email})
        db.commit()
        logger.info("Default roles seeded", extra={"roles": sorted(roles)})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
