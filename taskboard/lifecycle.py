"""Task lifecycle engine.

Owns every task operation and its transaction boundary. Each operation
runs in one transaction: it reads the task scoped to the caller's
organization, evaluates the rules in ``taskboard.rules`` against that
snapshot, then writes with a conditional UPDATE so that a concurrent
change to the same task makes the write miss instead of overwriting it.
Notifications are emitted after the transaction commits.

Usage::

    lifecycle = TaskLifecycle(database, NotificationService(database), storage)
    task = await lifecycle.submit_text_proof(principal, task_id, "done, see photo")
    task = await lifecycle.review(manager, task_id, ReviewDecision.APPROVED)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog
from fastapi import Request

from core.database import Database
from core.errors import AuthorizationError, NotFoundError, StateConflictError
from core.storage import LocalFileStorage
from patterns.rules_engine import RuleResult, evaluate_rules
from taskboard.config import TaskboardConfig
from taskboard.models.db_models import Task
from taskboard.models.schemas import (
    ManagerReview,
    NotificationType,
    Proof,
    TaskCreate,
    TaskUpdate,
    TextProof,
    file_proof_class,
)
from taskboard.notifications import NotificationService
from taskboard.repository import TaskRepository
from taskboard.rules import (
    Principal,
    calculate_progress,
    check_manager,
    check_proof_submission,
    check_reviewable,
    check_task_access,
    resolve_assignee,
    visibility_filter,
)
from taskboard.uploads import ProofUpload
from taskboard.workflow import (
    NOT_AWAITING_MESSAGE,
    PROOF_LOCKED_MESSAGE,
    ReviewDecision,
    is_verification_state,
    status_after_review,
    status_after_submission,
)

log = structlog.get_logger(__name__)

TASK_NOT_FOUND = "Task not found"


def _raise_for(result: RuleResult, error: type[Exception]) -> None:
    if not result.passed:
        raise error(result.message)


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class TaskLifecycle:
    """Task operations with access control and atomic state transitions."""

    def __init__(
        self,
        database: Database,
        notifications: NotificationService,
        storage: LocalFileStorage,
        config: Optional[TaskboardConfig] = None,
    ):
        self.database = database
        self.notifications = notifications
        self.storage = storage
        self.config = config or TaskboardConfig.default()

    # -- Reads --

    async def get_task(self, principal: Principal, task_id: str) -> tuple[Task, int]:
        """Single task and its progress percentage."""
        async with self.database.session() as session:
            task = await self._load(TaskRepository(session), principal, task_id)
        return task, calculate_progress(task.steps)

    async def list_tasks(
        self, principal: Principal, page: int = 1, limit: Optional[int] = None
    ) -> tuple[list[Task], int]:
        """Tasks visible to the principal; every one of them unless ``limit`` is set."""
        async with self.database.session() as session:
            return await TaskRepository(session).list(
                principal.organization_id,
                page=page,
                limit=limit,
                filters=visibility_filter(principal),
            )

    async def list_pending(self, principal: Principal) -> list[Task]:
        _raise_for(check_manager(principal, "view pending proof"), AuthorizationError)
        async with self.database.session() as session:
            return await TaskRepository(session).list_pending(principal.organization_id)

    # -- Task edits --

    async def create_task(self, principal: Principal, data: TaskCreate) -> Task:
        self._check_direct_status(principal, data.status.value, task_id=None)
        async with self.database.session() as session:
            task = await TaskRepository(session).create(
                principal.organization_id,
                {
                    "title": data.title,
                    "description": data.description,
                    "category": data.category,
                    "assigned_to": resolve_assignee(principal, data.assigned_to),
                    "created_by": principal.id,
                    "due_date": data.due_date,
                    "urgency_color": data.urgency_color.value,
                    "status": data.status.value,
                    "steps": [s.to_document() for s in data.steps],
                },
            )
        log.info(
            "task_created",
            task_id=str(task.id),
            organization_id=task.organization_id,
            assigned_to=task.assigned_to,
        )
        return task

    async def update_task(self, principal: Principal, task_id: str, data: TaskUpdate) -> Task:
        """Partial update of the freely editable fields.

        ``status`` may be set to any value here, including the verification
        states, unless ``lock_verification_statuses`` is enabled.
        """
        changes = {k: _column_value(v) for k, v in data.changes().items()}
        if "status" in changes:
            self._check_direct_status(principal, changes["status"], task_id=task_id)

        async with self.database.session() as session:
            task = await TaskRepository(session).update(task_id, principal.organization_id, changes)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)

        log.info("task_updated", task_id=str(task.id), fields=sorted(changes))
        return task

    async def set_step_completed(
        self, principal: Principal, task_id: str, step_number: int, is_completed: bool
    ) -> tuple[Task, int]:
        """Toggle one step. Never changes ``status``.

        The row stays locked from read to write, so concurrent edits to the
        same task wait instead of failing the version check.
        """
        async with self.database.session() as session:
            repo = TaskRepository(session)
            task = await self._load(repo, principal, task_id, for_update=True)

            steps = [dict(s) for s in task.steps or []]
            step = next((s for s in steps if s.get("stepNumber") == step_number), None)
            if step is None:
                raise NotFoundError("Step not found")
            step["isCompleted"] = is_completed

            if not await repo.replace_steps(task.id, principal.organization_id, steps, task.version):
                raise StateConflictError("Task was modified concurrently, please retry")
            task = await repo.get(task.id, principal.organization_id, refresh=True)

        log.info(
            "task_step_updated",
            task_id=str(task.id),
            step_number=step_number,
            is_completed=is_completed,
        )
        return task, calculate_progress(task.steps)

    async def delete_task(self, principal: Principal, task_id: str) -> None:
        _raise_for(check_manager(principal, "delete tasks"), AuthorizationError)
        async with self.database.session() as session:
            deleted = await TaskRepository(session).delete(task_id, principal.organization_id)
        if not deleted:
            raise NotFoundError(TASK_NOT_FOUND)
        log.info("task_deleted", task_id=task_id, organization_id=principal.organization_id)

    # -- Proof submission --

    async def submit_text_proof(self, principal: Principal, task_id: str, text: str) -> Task:
        proof = TextProof(text=text, submitted_at=_now(), submitted_by=principal.id)
        task = await self._submit_proof(principal, task_id, proof)
        await self._notify_submission(task, notify_assignee=True)
        return task

    async def submit_file_proof(
        self, principal: Principal, task_id: str, upload: ProofUpload
    ) -> Task:
        """Store an uploaded file and attach it as proof.

        The task is checked before anything is written to storage; if the
        task changes between that check and the update, the stored file is
        removed again.
        """
        async with self.database.session() as session:
            task = await self._load(TaskRepository(session), principal, task_id)
        self._check_submission(principal, task)

        stored = await self.storage.save(upload.content, upload.mime_type, upload.file_name)
        proof = file_proof_class(stored.mime_type)(
            file_url=stored.url,
            file_name=stored.file_name,
            mime_type=stored.mime_type,
            file_size=stored.size,
            submitted_at=_now(),
            submitted_by=principal.id,
        )
        try:
            task = await self._submit_proof(principal, task_id, proof)
        except Exception:
            await self.storage.delete(stored)
            raise

        await self._notify_submission(task, notify_assignee=False)
        return task

    async def _submit_proof(self, principal: Principal, task_id: str, proof: Proof) -> Task:
        async with self.database.session() as session:
            repo = TaskRepository(session)
            task = await self._load(repo, principal, task_id)
            self._check_submission(principal, task)
            new_status = status_after_submission(task.status, has_proof=task.proof is not None)

            matched = await repo.store_proof(
                task.id, principal.organization_id, new_status, proof.to_document()
            )
            if not matched:
                raise StateConflictError(PROOF_LOCKED_MESSAGE)
            task = await repo.get(task.id, principal.organization_id, refresh=True)

        log.info(
            "proof_submitted",
            task_id=str(task.id),
            proof_type=proof.proof_type,
            submitted_by=principal.id,
        )
        return task

    # -- Review --

    async def review(
        self,
        principal: Principal,
        task_id: str,
        decision: ReviewDecision,
        comment: Optional[str] = None,
    ) -> Task:
        """Approve or reject the outstanding proof."""
        _raise_for(check_manager(principal, "review proof"), AuthorizationError)

        async with self.database.session() as session:
            repo = TaskRepository(session)
            task = await self._load(repo, principal, task_id)
            _raise_for(check_reviewable(task), StateConflictError)

            new_status = status_after_review(task.status, decision)
            review = ManagerReview(
                reviewed_by=principal.id,
                reviewed_at=_now(),
                decision=decision,
                comment=comment or "",
            )
            if not await repo.record_review(task.id, principal.organization_id, new_status, review.to_document()):
                raise StateConflictError(NOT_AWAITING_MESSAGE)
            task = await repo.get(task.id, principal.organization_id, refresh=True)

        log.info(
            "proof_reviewed",
            task_id=str(task.id),
            decision=decision.value,
            reviewed_by=principal.id,
        )
        await self._notify_review(task, decision, comment)
        return task

    # -- Helpers --

    async def _load(
        self, repo: TaskRepository, principal: Principal, task_id: str, for_update: bool = False
    ) -> Task:
        task = await repo.get(task_id, principal.organization_id, for_update=for_update)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    def _check_submission(self, principal: Principal, task: Task) -> None:
        checks = evaluate_rules(check_task_access(principal, task), check_proof_submission(task))
        if checks.all_passed:
            return
        failure = checks.first_failure
        error = AuthorizationError if failure.rule_name == "task_access" else StateConflictError
        raise error(failure.message)

    def _check_direct_status(self, principal: Principal, status: str, task_id: Optional[str]) -> None:
        if not is_verification_state(status):
            return
        if self.config.lock_verification_statuses:
            raise StateConflictError(
                "Verification statuses are set by proof submission and review only"
            )
        log.warning(
            "task_status_set_directly",
            task_id=task_id,
            status=status,
            principal_id=principal.id,
        )

    async def _notify_submission(self, task: Task, notify_assignee: bool) -> None:
        recipients = []
        if notify_assignee and task.assigned_to:
            recipients.append(task.assigned_to)
        recipients.append(task.created_by)

        for user_id in recipients:
            await self.notifications.notify(
                user_id,
                NotificationType.PROOF_SUBMITTED,
                "Proof submitted",
                "A proof was submitted for a task and is awaiting verification.",
                task_id=task.id,
                organization_id=task.organization_id,
            )

    async def _notify_review(
        self, task: Task, decision: ReviewDecision, comment: Optional[str]
    ) -> None:
        submitter = task.proof.get("submittedBy") if task.proof else None
        if not submitter:
            return

        if decision == ReviewDecision.APPROVED:
            await self.notifications.notify(
                submitter,
                NotificationType.PROOF_APPROVED,
                "Proof approved",
                "Your proof was approved. Task is now Verified.",
                task_id=task.id,
                organization_id=task.organization_id,
            )
            return

        message = "Your proof was rejected."
        if comment:
            message = f"{message} Feedback: {comment}"
        await self.notifications.notify(
            submitter,
            NotificationType.PROOF_REJECTED,
            "Proof rejected",
            message,
            task_id=task.id,
            organization_id=task.organization_id,
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# FastAPI dependency factory
# ---------------------------------------------------------------------------

def get_lifecycle(request: Request) -> TaskLifecycle:
    """FastAPI dependency for the engine built at startup."""
    return request.app.state.lifecycle
