from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_rejection_reason(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: int,
    to_state: int,
) -> GuardResult:
    reason = _get_value(after_obj, "rejection_reason")
    if not reason or not str(reason).strip():
        return [{"field": "rejection_reason", "reason": "Rejection reason is required"}]
    return []
