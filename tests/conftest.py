"""Shared fixtures: a sqlite database per test, the engine, and an HTTP client."""
import httpx
import pytest
import pytest_asyncio

from api.main import create_app
from core.config import Settings
from core.database import Database
from core.storage import LocalFileStorage
from taskboard.config import TaskboardConfig
from taskboard.focus import FocusService
from taskboard.lifecycle import TaskLifecycle
from taskboard.models.schemas import TaskCreate
from taskboard.notifications import NotificationService
from taskboard.rules import Principal, Role

MANAGER = Principal(id="mgr-1", role=Role.MANAGER, organization_id="org-1")
EMPLOYEE = Principal(id="emp-1", role=Role.EMPLOYEE, organization_id="org-1")
OTHER_EMPLOYEE = Principal(id="emp-2", role=Role.EMPLOYEE, organization_id="org-1")
REGULAR = Principal(id="reg-1", role=Role.REGULAR, organization_id="org-1")
OTHER_ORG_MANAGER = Principal(id="mgr-9", role=Role.MANAGER, organization_id="org-2")
NO_ORG_USER = Principal(id="loner", role=Role.REGULAR, organization_id=None)


def headers_for(principal: Principal) -> dict[str, str]:
    headers = {"X-User-Id": principal.id, "X-User-Role": principal.role.value}
    if principal.organization_id:
        headers["X-Organization-Id"] = principal.organization_id
    return headers


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'equitask.db'}",
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def storage(settings):
    return LocalFileStorage(settings.upload_dir)


@pytest.fixture
def notifications(database):
    return NotificationService(database)


@pytest.fixture
def lifecycle(database, notifications, storage):
    return TaskLifecycle(database, notifications, storage, TaskboardConfig.default())


@pytest.fixture
def focus(database):
    return FocusService(database, TaskboardConfig.default())


@pytest.fixture
def create_task(lifecycle):
    """Create a task through the engine; defaults to a manager assigning EMPLOYEE."""

    async def _create(principal: Principal = MANAGER, **fields):
        fields.setdefault("title", "Restock shelf 4")
        if principal.role == Role.MANAGER:
            fields.setdefault("assigned_to", EMPLOYEE.id)
        return await lifecycle.create_task(principal, TaskCreate(**fields))

    return _create


@pytest_asyncio.fixture
async def client(settings):
    app = create_app(settings, TaskboardConfig.default())
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
