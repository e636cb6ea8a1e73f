"""Task authorization rules and transition preconditions, as pure functions.

Nothing here touches storage: each rule takes the principal and/or the
task snapshot and returns a ``RuleResult`` (or a plain value), so the
rules are unit-testable without a database.

Access model:
- Managers may act on any task in their organization.
- Everyone else may submit proof only for tasks they created or are
  assigned to.
- Listing is filtered per role: managers see the whole organization,
  employees see tasks assigned to them, regular users see tasks they
  created.
- Deletion and proof review are manager-only.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from patterns.rules_engine import RuleResult
from taskboard.workflow import (
    NOT_AWAITING_MESSAGE,
    PROOF_LOCKED_MESSAGE,
    TaskStatus,
    can_submit_proof,
)


class Role(str, Enum):
    MANAGER = "manager"
    EMPLOYEE = "employee"
    REGULAR = "regular"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    id: str
    role: Role
    organization_id: Optional[str] = None

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER


class TaskLike(Protocol):
    created_by: str
    assigned_to: Optional[str]
    status: str
    proof: Optional[dict]
    steps: list


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------

def can_access_task(principal: Principal, task: TaskLike) -> bool:
    """Managers always; otherwise only the creator or the assignee."""
    if principal.is_manager:
        return True
    return principal.id in (task.created_by, task.assigned_to)


def check_task_access(principal: Principal, task: TaskLike) -> RuleResult:
    passed = can_access_task(principal, task)
    return RuleResult(
        passed=passed,
        rule_name="task_access",
        message="Access granted" if passed else "Not authorized for this task",
        details={"role": principal.role.value, "principal_id": principal.id},
    )


def check_manager(principal: Principal, action: str) -> RuleResult:
    return RuleResult(
        passed=principal.is_manager,
        rule_name="manager_only",
        message="Allowed" if principal.is_manager else f"Only managers can {action}",
        details={"role": principal.role.value, "action": action},
    )


def visibility_filter(principal: Principal) -> dict[str, Any]:
    """Equality filters applied on top of organization scope when listing."""
    if principal.role == Role.MANAGER:
        return {}
    if principal.role == Role.EMPLOYEE:
        return {"assigned_to": principal.id}
    return {"created_by": principal.id}


def resolve_assignee(principal: Principal, requested: Optional[str]) -> Optional[str]:
    """Managers assign freely (or leave unassigned); others always self-assign."""
    if principal.is_manager:
        return requested or None
    return principal.id


# ---------------------------------------------------------------------------
# Transition preconditions
# ---------------------------------------------------------------------------

def check_proof_submission(task: TaskLike) -> RuleResult:
    """A proof may be submitted when none exists or the last one was rejected."""
    has_proof = task.proof is not None
    passed = can_submit_proof(task.status, has_proof)
    return RuleResult(
        passed=passed,
        rule_name="proof_submission",
        message="Proof may be submitted" if passed else PROOF_LOCKED_MESSAGE,
        details={"status": task.status, "has_proof": has_proof},
    )


def check_reviewable(task: TaskLike) -> RuleResult:
    passed = task.status == TaskStatus.AWAITING_VERIFICATION.value
    return RuleResult(
        passed=passed,
        rule_name="reviewable",
        message="Task is awaiting verification" if passed else NOT_AWAITING_MESSAGE,
        details={"status": task.status},
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def calculate_progress(steps: list[dict[str, Any]]) -> int:
    """Percentage of completed steps, 0 for a task without steps."""
    total = len(steps)
    if total == 0:
        return 0
    completed = sum(1 for s in steps if s.get("isCompleted"))
    # halves round up: 1 of 8 steps is 13
    return int(100 * completed / total + 0.5)
