"""Test notification inboxes."""
import pytest

from conftest import EMPLOYEE, MANAGER, headers_for
from core.errors import NotFoundError
from taskboard.models.schemas import NotificationType
from taskboard.notifications import NotificationService


@pytest.mark.asyncio
async def test_notify_and_list_newest_first(notifications):
    await notifications.notify(EMPLOYEE.id, NotificationType.TASK_DUE_SOON, "Due soon", "first")
    await notifications.notify(EMPLOYEE.id, NotificationType.TASK_DUE_NOW, "Due now", "second")
    await notifications.notify(MANAGER.id, NotificationType.TASK_DUE_NOW, "Due now", "other inbox")

    inbox = await notifications.list_for_user(EMPLOYEE.id)

    assert [n.message for n in inbox] == ["second", "first"]
    assert all(not n.is_read for n in inbox)


@pytest.mark.asyncio
async def test_list_is_capped(database):
    service = NotificationService(database, list_limit=2)
    for n in range(3):
        await service.notify(EMPLOYEE.id, NotificationType.TASK_DUE_SOON, "Due soon", f"#{n}")

    assert len(await service.list_for_user(EMPLOYEE.id)) == 2


@pytest.mark.asyncio
async def test_mark_read_only_by_owner(notifications):
    created = await notifications.notify(
        EMPLOYEE.id, NotificationType.PROOF_APPROVED, "Proof approved", "ok"
    )

    with pytest.raises(NotFoundError):
        await notifications.mark_read(str(created.id), MANAGER.id)

    updated = await notifications.mark_read(str(created.id), EMPLOYEE.id)
    assert updated.is_read is True


@pytest.mark.asyncio
async def test_mark_read_malformed_id(notifications):
    with pytest.raises(NotFoundError):
        await notifications.mark_read("not-an-id", EMPLOYEE.id)


@pytest.mark.asyncio
async def test_inbox_over_http(client):
    created = await client.post(
        "/api/tasks",
        json={"title": "Sweep", "assignedTo": EMPLOYEE.id},
        headers=headers_for(MANAGER),
    )
    task_id = created.json()["task"]["id"]
    await client.post(
        f"/api/proof/{task_id}/text", json={"text": "Swept"}, headers=headers_for(EMPLOYEE)
    )

    response = await client.get("/api/notifications", headers=headers_for(MANAGER))

    body = response.json()
    assert response.status_code == 200
    assert body["count"] == 1
    notification = body["notifications"][0]
    assert notification["type"] == "proof_submitted"
    assert notification["task"] == task_id
    assert notification["isRead"] is False

    marked = await client.patch(
        f"/api/notifications/{notification['id']}/read", headers=headers_for(MANAGER)
    )
    assert marked.status_code == 200
    assert marked.json()["notification"]["isRead"] is True

    foreign = await client.patch(
        f"/api/notifications/{notification['id']}/read", headers=headers_for(EMPLOYEE)
    )
    assert foreign.status_code == 404


@pytest.mark.asyncio
async def test_inbox_requires_identity(client):
    response = await client.get("/api/notifications")
    assert response.status_code == 401
