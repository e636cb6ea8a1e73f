"""Taskboard API routers: tasks, proof, notifications and focus sessions.

Handlers stay thin: they resolve the principal, hand the request to the
lifecycle engine (or the notification or focus service) and wrap the
result in the ``{"success": true, ...}`` envelope. Errors raised below
surface through the handlers in ``api.errors``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from api.auth import get_org_principal, get_principal, require_role
from taskboard.config import TaskboardConfig
from taskboard.focus import FocusService, get_focus_service
from taskboard.lifecycle import TaskLifecycle, get_lifecycle
from taskboard.models.schemas import (
    FocusStart,
    ReviewRequest,
    StepUpdate,
    TaskCreate,
    TaskUpdate,
    TextProofSubmit,
)
from taskboard.notifications import NotificationService, get_notification_service
from taskboard.rules import Principal, Role
from taskboard.uploads import read_proof_upload

tasks_router = APIRouter()
proof_router = APIRouter()
notifications_router = APIRouter()
focus_router = APIRouter()


def get_taskboard_config(request: Request) -> TaskboardConfig:
    return request.app.state.taskboard_config


# ============================================================================
# Task Endpoints
# ============================================================================

@tasks_router.post("", status_code=201)
async def create_task(
    request: TaskCreate,
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Create a task. Non-managers are always assigned to themselves."""
    task = await lifecycle.create_task(principal, request)
    return {"success": True, "message": "Task created successfully", "task": task.to_dict()}


@tasks_router.get("")
async def list_tasks(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """List tasks visible to the caller's role.

    Returns every visible task unless ``limit`` is given, in which case the
    response is one page and carries ``pagination``.
    """
    tasks, total = await lifecycle.list_tasks(principal, page=page, limit=limit)
    body = {"success": True, "count": len(tasks), "tasks": [t.to_dict() for t in tasks]}
    if limit is not None:
        body["pagination"] = {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        }
    return body


@tasks_router.get("/{task_id}")
async def get_task(
    task_id: str,
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Get a single task with its progress percentage."""
    task, progress = await lifecycle.get_task(principal, task_id)
    return {"success": True, "task": task.to_dict(), "progress": progress}


@tasks_router.patch("/{task_id}/steps/{step_number}")
async def update_step(
    task_id: str,
    step_number: int,
    request: StepUpdate,
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Mark one step completed or not completed."""
    task, progress = await lifecycle.set_step_completed(
        principal, task_id, step_number, request.is_completed
    )
    return {"success": True, "task": task.to_dict(), "progress": progress}


@tasks_router.put("/{task_id}")
async def update_task(
    task_id: str,
    request: TaskUpdate,
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Update the fields that were sent."""
    task = await lifecycle.update_task(principal, task_id, request)
    return {"success": True, "message": "Task updated successfully", "task": task.to_dict()}


@tasks_router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    principal: Principal = Depends(require_role(Role.MANAGER)),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Delete a task permanently."""
    await lifecycle.delete_task(principal, task_id)
    return {"success": True, "message": "Task deleted successfully", "taskId": task_id}


# ============================================================================
# Proof Endpoints
# ============================================================================

@proof_router.get("/pending")
async def list_pending(
    principal: Principal = Depends(require_role(Role.MANAGER)),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Tasks in the organization awaiting verification."""
    pending = await lifecycle.list_pending(principal)
    return {"success": True, "count": len(pending), "pending": [t.to_dict() for t in pending]}


@proof_router.post("/{task_id}/text", status_code=201)
async def submit_text_proof(
    task_id: str,
    request: TextProofSubmit,
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Submit a written proof of completion."""
    task = await lifecycle.submit_text_proof(principal, task_id, request.text)
    return {"success": True, "message": "Text proof submitted", "task": task.to_dict()}


@proof_router.post("/{task_id}/file", status_code=201)
async def submit_file_proof(
    task_id: str,
    file: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_org_principal),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
    config: TaskboardConfig = Depends(get_taskboard_config),
):
    """Submit an image or audio proof (JPEG, PNG, MP3, WAV; 10MB max)."""
    upload = await read_proof_upload(file, config.proof)
    task = await lifecycle.submit_file_proof(principal, task_id, upload)
    return {"success": True, "message": "File proof submitted", "task": task.to_dict()}


@proof_router.post("/{task_id}/review")
async def review_proof(
    task_id: str,
    request: ReviewRequest,
    principal: Principal = Depends(require_role(Role.MANAGER)),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Approve or reject the submitted proof."""
    task = await lifecycle.review(principal, task_id, request.decision, request.comment)
    return {"success": True, "message": f"Task {request.decision.value}", "task": task.to_dict()}


# ============================================================================
# Notification Endpoints
# ============================================================================

@notifications_router.get("")
async def list_notifications(
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    """The caller's latest notifications, newest first."""
    notifications = await service.list_for_user(principal.id)
    return {
        "success": True,
        "count": len(notifications),
        "notifications": [n.to_dict() for n in notifications],
    }


@notifications_router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one of the caller's notifications as read."""
    notification = await service.mark_read(notification_id, principal.id)
    return {"success": True, "notification": notification.to_dict()}


# ============================================================================
# Focus Session Endpoints
# ============================================================================

@focus_router.post("/start", status_code=201)
async def start_focus_session(
    request: FocusStart,
    principal: Principal = Depends(get_org_principal),
    service: FocusService = Depends(get_focus_service),
):
    """Start a focus session on a task in the caller's organization."""
    session = await service.start(principal, request)
    return {"success": True, "message": "Focus session started", "session": session.to_dict()}


@focus_router.put("/{session_id}/complete")
async def complete_focus_session(
    session_id: str,
    principal: Principal = Depends(get_principal),
    service: FocusService = Depends(get_focus_service),
):
    """Complete one of the caller's sessions."""
    session = await service.complete(principal, session_id)
    return {"success": True, "message": "Focus session completed", "session": session.to_dict()}


@focus_router.get("/sessions")
async def list_focus_sessions(
    principal: Principal = Depends(get_principal),
    service: FocusService = Depends(get_focus_service),
):
    """The caller's sessions, newest first, with each task's title and status."""
    sessions = await service.list_for_user(principal)
    return {"success": True, "count": len(sessions), "sessions": sessions}
