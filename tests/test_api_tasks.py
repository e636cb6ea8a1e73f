"""Test the task endpoints over HTTP."""
import pytest

from conftest import (
    EMPLOYEE,
    MANAGER,
    NO_ORG_USER,
    OTHER_ORG_MANAGER,
    REGULAR,
    headers_for,
)


async def _create(client, principal=MANAGER, **body):
    body.setdefault("title", "Count the till")
    if principal is MANAGER:
        body.setdefault("assignedTo", EMPLOYEE.id)
    response = await client.post("/api/tasks", json=body, headers=headers_for(principal))
    assert response.status_code == 201, response.text
    return response.json()["task"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_create_task_returns_camel_case_document(client):
    task = await _create(
        client,
        description="Before close",
        steps=[
            {"stepNumber": 2, "description": "Count coins"},
            {"stepNumber": 1, "description": "Count notes"},
        ],
    )
    assert task["assignedTo"] == EMPLOYEE.id
    assert task["createdBy"] == MANAGER.id
    assert task["organizationId"] == "org-1"
    assert task["status"] == "not_started"
    assert task["urgencyColor"] == "yellow"
    assert task["category"] == "general"
    assert task["proof"] is None
    assert task["managerReview"] is None
    assert [s["stepNumber"] for s in task["steps"]] == [1, 2]


@pytest.mark.asyncio
async def test_create_task_requires_title(client):
    response = await client.post("/api/tasks", json={"title": "   "}, headers=headers_for(MANAGER))
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "Task title is required" in body["message"]


@pytest.mark.asyncio
async def test_duplicate_step_numbers_rejected(client):
    response = await client.post(
        "/api/tasks",
        json={
            "title": "Mop",
            "steps": [
                {"stepNumber": 1, "description": "Fill bucket"},
                {"stepNumber": 1, "description": "Mop floor"},
            ],
        },
        headers=headers_for(MANAGER),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_identity_is_401(client):
    response = await client.get("/api/tasks")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authorized, no identity provided"}


@pytest.mark.asyncio
async def test_unknown_role_is_401(client):
    response = await client.get("/api/tasks", headers={"X-User-Id": "x", "X-User-Role": "admin"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_user_without_organization_is_403(client):
    response = await client.get("/api/tasks", headers=headers_for(NO_ORG_USER))
    assert response.status_code == 403
    assert response.json()["message"] == "Not part of an organization"


@pytest.mark.asyncio
async def test_list_is_filtered_by_role(client):
    await _create(client)
    await _create(client, REGULAR, title="Water plants")

    manager_view = (await client.get("/api/tasks", headers=headers_for(MANAGER))).json()
    employee_view = (await client.get("/api/tasks", headers=headers_for(EMPLOYEE))).json()
    regular_view = (await client.get("/api/tasks", headers=headers_for(REGULAR))).json()

    assert manager_view["count"] == 2
    assert "pagination" not in manager_view
    assert [t["title"] for t in employee_view["tasks"]] == ["Count the till"]
    assert [t["title"] for t in regular_view["tasks"]] == ["Water plants"]


@pytest.mark.asyncio
async def test_list_paginates(client):
    for n in range(3):
        await _create(client, title=f"Task {n}")

    body = (await client.get("/api/tasks?page=2&limit=2", headers=headers_for(MANAGER))).json()
    assert body["count"] == 1
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["total_pages"] == 2


@pytest.mark.asyncio
async def test_get_task_includes_progress(client):
    task = await _create(client, steps=[{"stepNumber": 1, "description": "Only step"}])

    response = await client.get(f"/api/tasks/{task['id']}", headers=headers_for(EMPLOYEE))

    assert response.status_code == 200
    assert response.json()["progress"] == 0


@pytest.mark.asyncio
async def test_cross_org_task_is_404(client):
    task = await _create(client)
    response = await client.get(f"/api/tasks/{task['id']}", headers=headers_for(OTHER_ORG_MANAGER))
    assert response.status_code == 404
    assert response.json()["message"] == "Task not found"


@pytest.mark.asyncio
async def test_malformed_task_id_is_404(client):
    response = await client.get("/api/tasks/12345", headers=headers_for(MANAGER))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_toggle_step(client):
    task = await _create(
        client,
        steps=[
            {"stepNumber": 1, "description": "Count notes"},
            {"stepNumber": 2, "description": "Count coins"},
        ],
    )

    response = await client.patch(
        f"/api/tasks/{task['id']}/steps/1",
        json={"isCompleted": True},
        headers=headers_for(EMPLOYEE),
    )

    body = response.json()
    assert response.status_code == 200
    assert body["progress"] == 50
    assert body["task"]["status"] == "not_started"

    missing = await client.patch(
        f"/api/tasks/{task['id']}/steps/9",
        json={"isCompleted": True},
        headers=headers_for(EMPLOYEE),
    )
    assert missing.status_code == 404
    assert missing.json()["message"] == "Step not found"


@pytest.mark.asyncio
async def test_update_task(client):
    task = await _create(client)

    response = await client.put(
        f"/api/tasks/{task['id']}",
        json={"title": "Count the till twice", "urgencyColor": "red", "description": ""},
        headers=headers_for(MANAGER),
    )

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Task updated successfully"
    assert body["task"]["title"] == "Count the till twice"
    assert body["task"]["urgencyColor"] == "red"


@pytest.mark.asyncio
async def test_invalid_urgency_is_400(client):
    task = await _create(client)
    response = await client.put(
        f"/api/tasks/{task['id']}", json={"urgencyColor": "purple"}, headers=headers_for(MANAGER)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_only_managers_delete(client):
    task = await _create(client)

    denied = await client.delete(f"/api/tasks/{task['id']}", headers=headers_for(EMPLOYEE))
    assert denied.status_code == 403

    response = await client.delete(f"/api/tasks/{task['id']}", headers=headers_for(MANAGER))
    assert response.status_code == 200
    assert response.json()["taskId"] == task["id"]

    gone = await client.get(f"/api/tasks/{task['id']}", headers=headers_for(MANAGER))
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client):
    response = await client.get("/api/nothing-here", headers=headers_for(MANAGER))
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


@pytest.mark.asyncio
async def test_list_without_limit_returns_every_task(client):
    for n in range(55):
        await _create(client, title=f"Task {n}")

    body = (await client.get("/api/tasks", headers=headers_for(MANAGER))).json()

    assert body["count"] == 55
    assert len(body["tasks"]) == 55
    assert body["tasks"][0]["title"] == "Task 54"


@pytest.mark.asyncio
async def test_update_rejects_blank_title(client):
    task = await _create(client)

    response = await client.put(
        f"/api/tasks/{task['id']}", json={"title": "   "}, headers=headers_for(MANAGER)
    )

    assert response.status_code == 400
    assert "Task title is required" in response.json()["message"]
    current = await client.get(f"/api/tasks/{task['id']}", headers=headers_for(MANAGER))
    assert current.json()["task"]["title"] == "Count the till"


@pytest.mark.asyncio
async def test_update_trims_title(client):
    task = await _create(client)

    response = await client.put(
        f"/api/tasks/{task['id']}", json={"title": "  Recount  "}, headers=headers_for(MANAGER)
    )

    assert response.json()["task"]["title"] == "Recount"
