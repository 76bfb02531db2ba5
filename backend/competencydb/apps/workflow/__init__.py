from .engine import apply_transition, resolve_assignee
from .registry import ANY, WORKFLOWS, register_edge

__all__ = ["ANY", "WORKFLOWS", "apply_transition", "register_edge", "resolve_assignee"]
