from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

from competencydb.apps.validation.models import VPAStatus, VSRStatus

from .guards import guard_rejection_reason

# Matches any from-state that differs from the to-state.
ANY = "*"

EdgeKey = Tuple[Any, Any]
Effect = Callable[..., None]

# Guards run whenever a record enters the keyed state (including re-saves
# in that state). Edge effects are registered by the owning app through
# `register_edge` and fire only when the state actually changes.
WORKFLOWS: Dict[str, Dict[str, Any]] = {
    "vpa": {
        "guards": {
            VPAStatus.REJECTED: [guard_rejection_reason],
        },
        "edges": {},
    },
    "vsr": {
        "guards": {},
        "edges": {},
    },
}


def register_edge(entity_type: str, from_state: Any, to_state: Any) -> Callable[[Effect], Effect]:
    """
    Decorator adding `effect` to the edge table of `entity_type`.

        @register_edge("vsr", ANY, VSRStatus.PASS)
        def complete_training_request(db, *, before_obj, after_obj, ...): ...
    """

    def decorator(effect: Effect) -> Effect:
        edges: Dict[EdgeKey, List[Effect]] = WORKFLOWS[entity_type]["edges"]
        handlers = edges.setdefault((from_state, to_state), [])
        if effect not in handlers:
            handlers.append(effect)
        return effect

    return decorator


def edges_for(entity_type: str, from_state: Any, to_state: Any) -> List[Effect]:
    """Effects for a real state change, exact (from, to) edges first."""
    if from_state == to_state:
        return []
    edges: Dict[EdgeKey, List[Effect]] = WORKFLOWS.get(entity_type, {}).get("edges", {})
    return list(edges.get((from_state, to_state), [])) + list(edges.get((ANY, to_state), []))
