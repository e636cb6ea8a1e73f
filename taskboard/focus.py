"""Focus sessions: timed work sessions against a task.

A session is started on any task in the caller's organization and can
only be completed or listed by the user who started it.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import Request

from core.database import Database
from core.errors import NotFoundError, ValidationError
from taskboard.config import TaskboardConfig
from taskboard.models.db_models import FocusSession
from taskboard.models.schemas import FocusStart
from taskboard.repository import FocusSessionRepository, TaskRepository
from taskboard.rules import Principal

log = structlog.get_logger(__name__)


class FocusService:
    """Start, complete and list focus sessions."""

    def __init__(self, database: Database, config: Optional[TaskboardConfig] = None):
        self.database = database
        self.config = config or TaskboardConfig.default()

    async def start(self, principal: Principal, data: FocusStart) -> FocusSession:
        if not data.task_id:
            raise ValidationError("Task ID is required")

        async with self.database.session() as session:
            task = await TaskRepository(session).get(data.task_id, principal.organization_id)
            if task is None:
                raise NotFoundError("Task not found")
            focus = await FocusSessionRepository(session).create(
                principal.organization_id,
                {
                    "user_id": principal.id,
                    "task_id": task.id,
                    "duration": data.duration or self.config.default_focus_minutes,
                },
            )

        log.info(
            "focus_session_started",
            session_id=str(focus.id),
            task_id=str(focus.task_id),
            duration=focus.duration,
        )
        return focus

    async def complete(self, principal: Principal, session_id: str) -> FocusSession:
        async with self.database.session() as session:
            focus = await FocusSessionRepository(session).complete(session_id, principal.id)
        if focus is None:
            raise NotFoundError("Session not found")

        log.info("focus_session_completed", session_id=str(focus.id))
        return focus

    async def list_for_user(self, principal: Principal) -> list[dict[str, Any]]:
        """The caller's sessions as documents, newest first."""
        async with self.database.session() as session:
            rows = await FocusSessionRepository(session).list_for_user(principal.id)

        documents = []
        for focus, title, status in rows:
            task = {"id": str(focus.task_id), "title": title, "status": status}
            documents.append(focus.to_dict(task=task))
        return documents


def get_focus_service(request: Request) -> FocusService:
    """FastAPI dependency for the focus service built at startup."""
    return request.app.state.focus
