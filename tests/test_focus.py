"""Test focus sessions."""
import pytest

from conftest import EMPLOYEE, MANAGER, OTHER_ORG_MANAGER, headers_for
from core.errors import NotFoundError, ValidationError
from taskboard.config import TaskboardConfig
from taskboard.focus import FocusService
from taskboard.models.schemas import FocusStart, TaskUpdate


@pytest.mark.asyncio
async def test_start_uses_default_duration(focus, create_task):
    task = await create_task(MANAGER)

    session = await focus.start(EMPLOYEE, FocusStart(task_id=str(task.id)))

    assert session.user_id == EMPLOYEE.id
    assert session.task_id == task.id
    assert session.duration == 25
    assert session.completed is False
    assert session.end_time is None


@pytest.mark.asyncio
async def test_start_with_duration(focus, create_task):
    task = await create_task(MANAGER)
    session = await focus.start(EMPLOYEE, FocusStart(task_id=str(task.id), duration=50))
    assert session.duration == 50


@pytest.mark.asyncio
async def test_default_duration_is_configurable(database, create_task):
    service = FocusService(database, TaskboardConfig(default_focus_minutes=45))
    task = await create_task(MANAGER)

    session = await service.start(EMPLOYEE, FocusStart(task_id=str(task.id), duration=0))

    assert session.duration == 45


@pytest.mark.asyncio
async def test_start_requires_task_id(focus):
    with pytest.raises(ValidationError, match="Task ID is required"):
        await focus.start(EMPLOYEE, FocusStart())


@pytest.mark.asyncio
async def test_start_on_other_org_task_is_not_found(focus, create_task):
    task = await create_task(MANAGER)
    with pytest.raises(NotFoundError, match="Task not found"):
        await focus.start(OTHER_ORG_MANAGER, FocusStart(task_id=str(task.id)))


@pytest.mark.asyncio
async def test_complete_is_owner_only(focus, create_task):
    task = await create_task(MANAGER)
    session = await focus.start(EMPLOYEE, FocusStart(task_id=str(task.id)))

    with pytest.raises(NotFoundError, match="Session not found"):
        await focus.complete(MANAGER, str(session.id))

    completed = await focus.complete(EMPLOYEE, str(session.id))
    assert completed.completed is True
    assert completed.end_time is not None


@pytest.mark.asyncio
async def test_complete_malformed_id(focus):
    with pytest.raises(NotFoundError):
        await focus.complete(EMPLOYEE, "not-an-id")


@pytest.mark.asyncio
async def test_list_is_own_sessions_with_task_summary(focus, lifecycle, create_task):
    first = await create_task(MANAGER, title="Fold towels")
    second = await create_task(MANAGER, title="Sort mail")
    await focus.start(EMPLOYEE, FocusStart(task_id=str(first.id)))
    await focus.start(EMPLOYEE, FocusStart(task_id=str(second.id)))
    await focus.start(MANAGER, FocusStart(task_id=str(first.id)))
    await lifecycle.update_task(MANAGER, str(second.id), TaskUpdate(status="in_progress"))

    sessions = await focus.list_for_user(EMPLOYEE)

    assert [s["task"]["title"] for s in sessions] == ["Sort mail", "Fold towels"]
    assert sessions[0]["task"]["status"] == "in_progress"
    assert all(s["user"] == EMPLOYEE.id for s in sessions)


@pytest.mark.asyncio
async def test_list_keeps_sessions_of_deleted_tasks(focus, lifecycle, create_task):
    task = await create_task(MANAGER)
    await focus.start(EMPLOYEE, FocusStart(task_id=str(task.id)))
    await lifecycle.delete_task(MANAGER, str(task.id))

    [session] = await focus.list_for_user(EMPLOYEE)

    assert session["task"] == {"id": str(task.id), "title": None, "status": None}


@pytest.mark.asyncio
async def test_focus_over_http(client):
    created = await client.post(
        "/api/tasks",
        json={"title": "Deep clean fryer", "assignedTo": EMPLOYEE.id},
        headers=headers_for(MANAGER),
    )
    task_id = created.json()["task"]["id"]

    started = await client.post(
        "/api/focus/start", json={"taskId": task_id, "duration": 30}, headers=headers_for(EMPLOYEE)
    )
    assert started.status_code == 201
    body = started.json()
    assert body["message"] == "Focus session started"
    assert body["session"]["task"] == task_id
    assert body["session"]["duration"] == 30
    session_id = body["session"]["id"]

    foreign = await client.put(f"/api/focus/{session_id}/complete", headers=headers_for(MANAGER))
    assert foreign.status_code == 404

    completed = await client.put(f"/api/focus/{session_id}/complete", headers=headers_for(EMPLOYEE))
    assert completed.status_code == 200
    assert completed.json()["session"]["completed"] is True
    assert completed.json()["session"]["endTime"]

    listed = (await client.get("/api/focus/sessions", headers=headers_for(EMPLOYEE))).json()
    assert listed["count"] == 1
    assert listed["sessions"][0]["task"]["title"] == "Deep clean fryer"


@pytest.mark.asyncio
async def test_start_without_task_id_over_http(client):
    response = await client.post("/api/focus/start", json={}, headers=headers_for(EMPLOYEE))
    assert response.status_code == 400
    assert response.json()["message"] == "Task ID is required"
