from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from competencydb.errors import ValidationError

from .registry import WORKFLOWS, edges_for

logger = logging.getLogger(__name__)


def resolve_assignee(
    current: Optional[str],
    requested: Optional[str],
    actor: Optional[str],
) -> Optional[str]:
    """
    Sticky assignment: once set, an assignee is never overwritten.

    When nobody is assigned yet, the explicitly requested user wins,
    otherwise the acting user takes it.
    """
    if current:
        return current
    if requested:
        return requested
    return actor


def apply_transition(
    db: Session,
    *,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id: str,
    from_state: Any,
    to_state: Any,
    before_obj: Any,
    after_obj: Any,
) -> List[str]:
    """
    Check guards for `to_state`, then fire every edge effect registered for
    (from_state, to_state) in the caller's session.

    Returns the names of the effects that fired. Guard failures raise
    ValidationError before any effect runs.
    """
    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise ValidationError(
            f"No workflow registered for {entity_type}",
            detail=[{"field": "entity_type", "reason": f"No workflow registered for {entity_type}"}],
        )

    failures: List[Dict[str, str]] = []
    for guard in workflow.get("guards", {}).get(to_state, []):
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=from_state,
                to_state=to_state,
            )
        )
    if failures:
        raise ValidationError("; ".join(item["reason"] for item in failures), detail=failures)

    fired: List[str] = []
    for effect in edges_for(entity_type, from_state, to_state):
        effect(
            db,
            actor_user_id=actor_user_id,
            before_obj=before_obj,
            after_obj=after_obj,
            from_state=from_state,
            to_state=to_state,
        )
        fired.append(effect.__name__)

    if fired:
        logger.info(
            "Workflow edges fired",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "from_state": int(from_state) if from_state is not None else None,
                "to_state": int(to_state),
                "edges": fired,
            },
        )
    return fired
