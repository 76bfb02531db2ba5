# backend/competencydb/status_labels.py
"""
Human-readable status labels for training requests, VPAs, VSRs and project
assignment requests.

Labels are an ordered, comma-separated list per entity: the position in the
list is the numeric status code. The workflow only stores and compares the
integer codes; this module is the boundary lookup used by schemas and routers.
"""

from __future__ import annotations

import enum
import os
from typing import Any, Dict, List, Set, Type, TypeVar

from .errors import ValidationError

StatusT = TypeVar("StatusT", bound=enum.IntEnum)

UNKNOWN_LABEL = "Unknown"

# -------------------------------------------------------------------
# CONFIG FROM ENV
# -------------------------------------------------------------------

_DEFAULTS: Dict[str, str] = {
    "training_request": (
        "Not Started,Looking for trainer,In Queue,No batch match,In Progress,"
        "Sessions Completed,On Hold,Drop Off,Training Completed"
    ),
    "vpa": "Pending Validation Project Approval,Approved,Rejected,Resubmit for Re-validation",
    "vsr": "Pending Validation,Pending Re-validation,Validation Scheduled,Fail,Pass",
    "par": "New,Pending Project Assignment,Project Assigned,Rejected Project,No project match",
}

_ENV_KEYS: Dict[str, str] = {
    "training_request": "TRAINING_REQUEST_STATUS",
    "vpa": "VPA_STATUS",
    "vsr": "VSR_STATUS",
    "par": "PAR_STATUS",
}


def _parse(raw: str) -> List[str]:
    return [label.strip() for label in raw.split(",") if label.strip()]


def labels_for(entity: str) -> List[str]:
    """Return the configured label list for `entity` (read on every call)."""
    env_key = _ENV_KEYS[entity]
    raw = os.getenv(env_key) or _DEFAULTS[entity]
    return _parse(raw)


def label_for(entity: str, code: int) -> str:
    labels = labels_for(entity)
    if 0 <= code < len(labels):
        return labels[code]
    return UNKNOWN_LABEL


def code_for(entity: str, label: str) -> int:
    """Case-insensitive reverse lookup; unknown labels map to 0."""
    wanted = (label or "").strip().lower()
    for index, candidate in enumerate(labels_for(entity)):
        if candidate.lower() == wanted:
            return index
    return 0


def queue_eligible_statuses() -> Set[int]:
    """
    TR status codes that qualify a learner for batch assignment.

    QUEUE_ELIGIBLE_STATUSES is a comma-separated list of codes; the default
    is In Queue, No batch match and Drop Off.
    """
    raw = os.getenv("QUEUE_ELIGIBLE_STATUSES", "2,3,7")
    codes: Set[int] = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            codes.add(int(part))
        except ValueError:
            raise RuntimeError(f"Invalid status code {part!r} in QUEUE_ELIGIBLE_STATUSES")
    return codes


def coerce_status(status_enum: Type[StatusT], value: Any, *, field: str = "status") -> StatusT:
    """Turn client input into a status member; unknown codes are a ValidationError."""
    try:
        return status_enum(int(value))
    except (TypeError, ValueError):
        reason = f"{value!r} is not a valid {field}"
        raise ValidationError(reason, detail=[{"field": field, "reason": reason}])
