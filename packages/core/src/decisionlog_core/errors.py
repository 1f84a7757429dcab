"""Typed failures returned by every workflow operation.

All three are raised before any mutation takes place. Callers are expected
to show the message verbatim and not to retry without changing state.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for logical consistency failures."""


class ValidationError(WorkflowError):
    """Malformed or missing input: blank title, empty reason list, duplicate branch ids."""


class InvalidState(WorkflowError):
    """The target entity's status forbids the operation."""


class NotFound(WorkflowError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id!r} not found")
