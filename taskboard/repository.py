"""Task, notification and focus session repositories.

Extends BaseRepository with task-specific queries and the conditional
updates that make each lifecycle transition a single atomic statement.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import ColumnElement, or_, select, update

from core.models.base import utcnow
from patterns.repository import BaseRepository, parse_id
from taskboard.models.db_models import FocusSession, Notification, Task
from taskboard.workflow import RESUBMITTABLE_STATES, TaskStatus


# ---------------------------------------------------------------------------
# Task repository
# ---------------------------------------------------------------------------

class TaskRepository(BaseRepository[Task]):
    """Repository for task CRUD and lifecycle transitions."""

    model = Task

    async def conditional_update(
        self,
        item_id: str | UUID,
        organization_id: str,
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> bool:
        """Every task write bumps ``version``."""
        return await super().conditional_update(
            item_id,
            organization_id,
            {**values, "version": Task.version + 1},
            *conditions,
        )

    async def list_pending(self, organization_id: str) -> list[Task]:
        """Tasks awaiting verification, most recently updated first."""
        stmt = select(Task).where(
            Task.organization_id == organization_id,
            Task.status == TaskStatus.AWAITING_VERIFICATION.value,
        ).order_by(Task.updated_at.desc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def store_proof(
        self,
        task_id: str | UUID,
        organization_id: str,
        new_status: TaskStatus,
        proof: dict[str, Any],
    ) -> bool:
        """Attach a proof if none is outstanding; clears any earlier review.

        Matches only while the task has no proof or its proof was rejected,
        so of two racing submissions exactly one succeeds.
        """
        return await self.conditional_update(
            task_id,
            organization_id,
            {
                "proof": proof,
                "status": new_status.value,
                "manager_review": None,
            },
            or_(
                Task.proof.is_(None),
                Task.status.in_([s.value for s in RESUBMITTABLE_STATES]),
            ),
        )

    async def record_review(
        self,
        task_id: str | UUID,
        organization_id: str,
        new_status: TaskStatus,
        review: dict[str, Any],
    ) -> bool:
        """Record a decision only while the task is still awaiting verification."""
        return await self.conditional_update(
            task_id,
            organization_id,
            {"status": new_status.value, "manager_review": review},
            Task.status == TaskStatus.AWAITING_VERIFICATION.value,
        )

    async def replace_steps(
        self,
        task_id: str | UUID,
        organization_id: str,
        steps: list[dict[str, Any]],
        expected_version: int,
    ) -> bool:
        return await self.conditional_update(
            task_id,
            organization_id,
            {"steps": steps},
            Task.version == expected_version,
        )


# ---------------------------------------------------------------------------
# Notification repository
# ---------------------------------------------------------------------------

class NotificationRepository(BaseRepository[Notification]):
    """Repository for per-user notification inboxes."""

    model = Notification

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: str | UUID, user_id: str) -> Notification | None:
        """Flag a notification read. Only its owner matches."""
        key = parse_id(notification_id)
        if key is None:
            return None
        stmt = (
            update(Notification)
            .where(Notification.id == key, Notification.user_id == user_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        refreshed = await self.session.execute(
            select(Notification)
            .where(Notification.id == key)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()


# ---------------------------------------------------------------------------
# Focus session repository
# ---------------------------------------------------------------------------

class FocusSessionRepository(BaseRepository[FocusSession]):
    """Repository for a user's focus sessions."""

    model = FocusSession

    async def list_for_user(
        self, user_id: str
    ) -> list[tuple[FocusSession, Optional[str], Optional[str]]]:
        """Sessions newest first, each with its task's title and status.

        Title and status are None when the task has since been deleted.
        """
        stmt = (
            select(FocusSession, Task.title, Task.status)
            .outerjoin(Task, Task.id == FocusSession.task_id)
            .where(FocusSession.user_id == user_id)
            .order_by(FocusSession.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def complete(self, session_id: str | UUID, user_id: str) -> FocusSession | None:
        """Mark a session completed now. Only its owner matches."""
        key = parse_id(session_id)
        if key is None:
            return None
        stmt = (
            update(FocusSession)
            .where(FocusSession.id == key, FocusSession.user_id == user_id)
            .values(completed=True, end_time=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        refreshed = await self.session.execute(
            select(FocusSession)
            .where(FocusSession.id == key)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()
