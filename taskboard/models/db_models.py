"""SQLAlchemy models for tasks, notifications and focus sessions.

Each model inherits from Base and uses OrganizationMixin for organization
isolation. Embedded records (steps, proof, manager review) are JSON
documents on the task row, so every lifecycle transition is a single-row
update. The to_dict() method provides the wire representation used by the
routers.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import Base, OrganizationMixin, utcnow
from taskboard.workflow import TaskStatus


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Task(OrganizationMixin, Base):
    """A unit of work owned by an organization."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="general")
    urgency_color: Mapped[str] = mapped_column(String(10), nullable=False, default="yellow")
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, index=True, default=TaskStatus.NOT_STARTED.value
    )
    steps: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    proof: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    manager_review: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )

    # Bumped on every write; used for optimistic checks on step edits.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "organizationId": self.organization_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "urgencyColor": self.urgency_color,
            "dueDate": _iso(self.due_date),
            "createdBy": self.created_by,
            "assignedTo": self.assigned_to,
            "status": self.status,
            "steps": list(self.steps or []),
            "proof": self.proof,
            "managerReview": self.manager_review,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Notification(OrganizationMixin, Base):
    """An inbox entry for one user. Only ``is_read`` changes after insert."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    task_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "task": str(self.task_id) if self.task_id else None,
            "isRead": self.is_read,
            "createdAt": _iso(self.created_at),
        }


class FocusSession(OrganizationMixin, Base):
    """A timed work session a user runs against one task."""

    __tablename__ = "focus_sessions"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    task_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=25)  # minutes
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self, task: Optional[dict[str, Any]] = None) -> dict:
        """``task`` replaces the bare task id with a summary when given."""
        return {
            "id": str(self.id),
            "user": self.user_id,
            "task": task if task is not None else str(self.task_id),
            "duration": self.duration,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "completed": self.completed,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
