"""
Workflow error kinds.

Services raise these; `competencydb.operations.run_operation` catches them at
the operation boundary and turns them into a failed `OperationResult`.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class WorkflowError(Exception):
    """Base class for every error a workflow operation can report."""

    status_code = 400

    def __init__(self, message: str, *, detail: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or []

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(WorkflowError):
    """Malformed or missing input (e.g. rejecting without a reason)."""

    status_code = 422


class ImmutableError(ValidationError):
    """Raised when something tries to change a finished batch."""

    status_code = 409


class EligibilityError(WorkflowError):
    """A learner has no training request in a queue-eligible status."""

    status_code = 409


class CapacityError(WorkflowError):
    """Learner count would exceed capacity, or capacity would drop below it."""

    status_code = 409


class SequenceError(WorkflowError):
    """Session dating or attendance ordering was violated."""

    status_code = 409


class NotReadyError(WorkflowError):
    """Batch finish preconditions are not met."""

    status_code = 409


class NotFoundError(WorkflowError):
    status_code = 404


class AuthorizationError(WorkflowError):
    status_code = 403


class GenerationError(WorkflowError):
    """The identifier counter update affected no rows; retry the whole operation."""

    status_code = 503
