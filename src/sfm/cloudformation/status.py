"""
Coarse classification of CloudFormation stack statuses.
"""

from enum import Enum
from typing import Optional


class Phase(Enum):
    """Coarse phase of a stack."""
    OK = "ok"
    IN_PROGRESS = "prog"
    ERROR = "err"


OK_STATUSES = frozenset(
    [
        "CREATE_COMPLETE",
        "IMPORT_COMPLETE",
        "DELETE_COMPLETE",
        "UPDATE_COMPLETE",
    ]
)

IN_PROGRESS_STATUSES = frozenset(
    [
        "CREATE_IN_PROGRESS",
        "DELETE_IN_PROGRESS",
        "IMPORT_IN_PROGRESS",
        "IMPORT_ROLLBACK_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
        "ROLLBACK_IN_PROGRESS",
        "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
        "UPDATE_IN_PROGRESS",
        "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS",
        "UPDATE_ROLLBACK_IN_PROGRESS",
    ]
)

# Stacks in these states never finished creating and cannot be updated.
FAILED_CREATE_STATUSES = frozenset(
    [
        "CREATE_FAILED",
        "ROLLBACK_FAILED",
        "ROLLBACK_COMPLETE",
    ]
)


def classify(raw_status: Optional[str]) -> Phase:
    """Map a raw stack status to its phase.

    Unknown statuses are errors, so new remote states never pass as success.
    """
    if raw_status in OK_STATUSES:
        return Phase.OK
    if raw_status in IN_PROGRESS_STATUSES:
        return Phase.IN_PROGRESS
    return Phase.ERROR


def is_failed_create(raw_status: Optional[str]) -> bool:
    """Check if a stack is stuck after a failed create."""
    return raw_status in FAILED_CREATE_STATUSES
