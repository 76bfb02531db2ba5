from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from competencydb.errors import NotFoundError, ValidationError
from competencydb.apps.accounts import models as account_models

from . import models, schemas


def create_competency(db: Session, data: schemas.CompetencyCreate) -> models.Competency:
    competency = models.Competency(name=data.name.strip(), description=data.description)
    db.add(competency)
    db.flush()

    for level in data.levels:
        add_level(db, competency=competency, data=level)
    for trainer_user_id in data.trainer_user_ids:
        add_trainer(db, competency=competency, trainer_user_id=trainer_user_id)
    return competency


def add_level(
    db: Session,
    *,
    competency: models.Competency,
    data: schemas.CompetencyLevelCreate,
) -> models.CompetencyLevel:
    name = data.name.strip()
    exists = (
        db.query(models.CompetencyLevel)
        .filter(
            models.CompetencyLevel.competency_id == competency.id,
            models.CompetencyLevel.name == name,
        )
        .first()
    )
    if exists:
        raise ValidationError(f"Level '{name}' already exists for this competency")

    level = models.CompetencyLevel(
        competency_id=competency.id,
        name=name,
        training_plan_document=data.training_plan_document,
        eligibility_criteria=data.eligibility_criteria,
        verification=data.verification,
    )
    db.add(level)
    db.flush()
    return level


def add_trainer(db: Session, *, competency: models.Competency, trainer_user_id: str) -> models.CompetencyTrainer:
    if not db.get(account_models.User, trainer_user_id):
        raise NotFoundError("Trainer not found")
    row = db.get(models.CompetencyTrainer, (competency.id, trainer_user_id))
    if row:
        return row
    row = models.CompetencyTrainer(competency_id=competency.id, trainer_user_id=trainer_user_id)
    db.add(row)
    db.flush()
    return row


def get_level(db: Session, level_id: str) -> models.CompetencyLevel:
    level = db.get(models.CompetencyLevel, level_id)
    if level is None or level.is_deleted:
        raise NotFoundError("Competency level not found")
    return level


def trainers_for_level(db: Session, level_id: Optional[str]) -> List[str]:
    """User ids registered as trainers for the competency owning `level_id`."""
    if not level_id:
        return []
    level = db.get(models.CompetencyLevel, level_id)
    if level is None:
        return []
    rows = (
        db.query(models.CompetencyTrainer.trainer_user_id)
        .filter(models.CompetencyTrainer.competency_id == level.competency_id)
        .all()
    )
    return [row[0] for row in rows]


def list_competencies(db: Session) -> List[models.Competency]:
    return (
        db.query(models.Competency)
        .filter(models.Competency.is_deleted.is_(False))
        .order_by(models.Competency.name.asc())
        .all()
    )
