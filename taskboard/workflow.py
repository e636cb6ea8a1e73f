"""Task status state machine.

Two kinds of state live in one ``status`` column:

* Free-form progress states (``not_started``, ``in_progress``,
  ``completed``, ``overdue``) that any authorized editor sets directly,
  in any order.
* The verification sub-flow, driven only by proof submission and manager
  review::

      (any, no proof) --submit--> awaiting_verification
      rejected        --submit--> awaiting_verification
      awaiting_verification --approved--> verified
      awaiting_verification --rejected--> rejected
"""

from enum import Enum

from core.errors import StateConflictError


# ---------------------------------------------------------------------------
# State definitions
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Task lifecycle states."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ReviewDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


VERIFICATION_STATES = frozenset({
    TaskStatus.AWAITING_VERIFICATION,
    TaskStatus.VERIFIED,
    TaskStatus.REJECTED,
})


# ---------------------------------------------------------------------------
# Transition rules
# ---------------------------------------------------------------------------

# States a proof may be submitted from even though a proof already exists.
RESUBMITTABLE_STATES = frozenset({TaskStatus.REJECTED})

_REVIEW_TRANSITIONS: dict[TaskStatus, dict[ReviewDecision, TaskStatus]] = {
    TaskStatus.AWAITING_VERIFICATION: {
        ReviewDecision.APPROVED: TaskStatus.VERIFIED,
        ReviewDecision.REJECTED: TaskStatus.REJECTED,
    },
}

PROOF_LOCKED_MESSAGE = "Proof already submitted. Wait for review or rejection."
NOT_AWAITING_MESSAGE = "Task is not awaiting verification"


def can_submit_proof(status: str, has_proof: bool) -> bool:
    return not has_proof or TaskStatus(status) in RESUBMITTABLE_STATES


def status_after_submission(status: str, has_proof: bool) -> TaskStatus:
    """Next status for a proof submission.

    Raises StateConflictError while an earlier proof is still outstanding
    or has been approved.
    """
    if not can_submit_proof(status, has_proof):
        raise StateConflictError(PROOF_LOCKED_MESSAGE)
    return TaskStatus.AWAITING_VERIFICATION


def status_after_review(status: str, decision: ReviewDecision) -> TaskStatus:
    """Next status for a manager decision.

    Raises StateConflictError unless the task is awaiting verification.
    """
    allowed = _REVIEW_TRANSITIONS.get(TaskStatus(status), {})
    if decision not in allowed:
        raise StateConflictError(NOT_AWAITING_MESSAGE)
    return allowed[decision]


def is_verification_state(status: str) -> bool:
    return TaskStatus(status) in VERIFICATION_STATES
