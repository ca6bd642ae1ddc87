"""Submission status state machine.

State Flow:
    IN_PROGRESS → PENDING → WAITING_TO_BE_RECEIVED → WAITING_ON_LAB_RESULTS → COMPLETED

Any non-terminal state except IN_PROGRESS may be CANCELLED. IN_PROGRESS is only
left through finalize (IN_PROGRESS → PENDING), which also assigns the code.

Terminal States: COMPLETED, CANCELLED
"""

from enum import Enum
from typing import Dict, List


class SubmissionStatus(str, Enum):
    """Submission status enumeration."""
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    WAITING_TO_BE_RECEIVED = "waiting_to_be_received"
    WAITING_ON_LAB_RESULTS = "waiting_on_lab_results"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: Dict[SubmissionStatus, List[SubmissionStatus]] = {
    SubmissionStatus.IN_PROGRESS: [SubmissionStatus.PENDING],
    SubmissionStatus.PENDING: [
        SubmissionStatus.WAITING_TO_BE_RECEIVED,
        SubmissionStatus.WAITING_ON_LAB_RESULTS,
        SubmissionStatus.COMPLETED,
        SubmissionStatus.CANCELLED,
    ],
    SubmissionStatus.WAITING_TO_BE_RECEIVED: [
        SubmissionStatus.WAITING_ON_LAB_RESULTS,
        SubmissionStatus.COMPLETED,
        SubmissionStatus.CANCELLED,
    ],
    SubmissionStatus.WAITING_ON_LAB_RESULTS: [
        SubmissionStatus.COMPLETED,
        SubmissionStatus.CANCELLED,
    ],
    SubmissionStatus.COMPLETED: [],  # Terminal state
    SubmissionStatus.CANCELLED: [],  # Terminal state
}

# Transitions that only finalize may perform (they assign the code)
FINALIZE_ONLY_TRANSITIONS = {
    (SubmissionStatus.IN_PROGRESS, SubmissionStatus.PENDING),
}


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


def validate_transition(
    current_status: SubmissionStatus,
    new_status: SubmissionStatus
) -> None:
    """Validate that a state transition is allowed.

    Args:
        current_status: Current submission status
        new_status: Target status to transition to

    Raises:
        StateTransitionError: If transition is not allowed
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise StateTransitionError(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}"
        )


def is_editable(status: str) -> bool:
    """Only drafts still being filled in accept autosave patches."""
    return status == SubmissionStatus.IN_PROGRESS.value
