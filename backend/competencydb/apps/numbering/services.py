from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from competencydb.errors import GenerationError

from . import models

logger = logging.getLogger(__name__)

VSR_NAMESPACE = "vsr"
TR_NAMESPACE = "tr"
PAR_NAMESPACE = "par"


def _counter_exists(db: Session, namespace: str) -> bool:
    row = db.execute(
        select(models.SequenceCounter.module).where(models.SequenceCounter.module == namespace)
    ).first()
    return row is not None


def _ensure_counter(db: Session, namespace: str) -> None:
    """
    Insert the counter row at 0 if it does not exist yet.

    Runs inside a SAVEPOINT so a concurrent insert that wins the race only
    rolls back this step, not the caller's transaction.
    """
    if _counter_exists(db, namespace):
        return

    try:
        with db.begin_nested():
            db.execute(insert(models.SequenceCounter).values(module=namespace, running_number=0))
    except IntegrityError:
        logger.warning(
            "Counter row created concurrently; continuing with increment",
            extra={"namespace": namespace},
        )


def format_id(prefix: str, number: int) -> str:
    return f"{prefix}{number:02d}"


def next_id(db: Session, namespace: str, *, prefix: Optional[str] = None) -> str:
    """
    Return the next human-readable id for `namespace`, e.g. "VSR07".

    The increment is a single UPDATE ... RETURNING so concurrent callers can
    never observe the same number. Raises GenerationError when the counter
    row vanished between the insert and the update; the caller retries the
    whole enclosing operation.
    """
    _ensure_counter(db, namespace)

    stmt = (
        update(models.SequenceCounter)
        .where(models.SequenceCounter.module == namespace)
        .values(running_number=models.SequenceCounter.running_number + 1)
        .returning(models.SequenceCounter.running_number)
        .execution_options(synchronize_session=False)
    )
    row = db.execute(stmt).first()
    if row is None:
        raise GenerationError(f"Failed to generate {namespace.upper()} ID")

    return format_id(prefix if prefix is not None else namespace.upper(), int(row[0]))


def peek(db: Session, namespace: str) -> int:
    value = db.execute(
        select(models.SequenceCounter.running_number).where(models.SequenceCounter.module == namespace)
    ).scalar()
    return int(value or 0)
