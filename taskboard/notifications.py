"""Notification sink.

Writes inbox entries for users. Emission is best-effort relative to the
task change that triggered it: each notification is written in its own
transaction after the task change has committed, and a failure is logged
and swallowed rather than reported to the caller.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from fastapi import Request

from core.database import Database
from core.errors import NotFoundError
from taskboard.models.db_models import Notification
from taskboard.models.schemas import NotificationType
from taskboard.repository import NotificationRepository

log = structlog.get_logger(__name__)


class NotificationService:
    """Create, list and acknowledge notifications."""

    def __init__(self, database: Database, list_limit: int = 50):
        self.database = database
        self.list_limit = list_limit

    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        task_id: Optional[UUID] = None,
        organization_id: str = "",
    ) -> Optional[Notification]:
        """Create a notification. Returns None if the write failed."""
        try:
            async with self.database.session() as session:
                notification = await NotificationRepository(session).create(
                    organization_id,
                    {
                        "user_id": user_id,
                        "type": type.value,
                        "title": title,
                        "message": message,
                        "task_id": task_id,
                    },
                )
        except Exception:
            log.exception(
                "notification_emit_failed",
                user_id=user_id,
                notification_type=type.value,
                task_id=str(task_id) if task_id else None,
            )
            return None

        log.info(
            "notification_created",
            user_id=user_id,
            notification_type=type.value,
            task_id=str(task_id) if task_id else None,
        )
        return notification

    async def list_for_user(self, user_id: str) -> list[Notification]:
        async with self.database.session() as session:
            return await NotificationRepository(session).list_for_user(user_id, self.list_limit)

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        async with self.database.session() as session:
            notification = await NotificationRepository(session).mark_read(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification


# ---------------------------------------------------------------------------
# FastAPI dependency factory
# ---------------------------------------------------------------------------

def get_notification_service(request: Request) -> NotificationService:
    """FastAPI dependency for the notification service built at startup."""
    return request.app.state.notifications
