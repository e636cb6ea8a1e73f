"""Async repository pattern for database access.

Provides a generic base repository with CRUD operations, organization
isolation, pagination, and a compare-and-swap update. Domain repositories
subclass this to add their own queries.

Repositories never raise domain errors: a missing row is ``None`` or
``False`` and the caller decides what that means.
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


def parse_id(item_id: str | UUID) -> UUID | None:
    """Parse an external id; malformed ids are treated as absent."""
    if isinstance(item_id, UUID):
        return item_id
    try:
        return UUID(str(item_id))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with CRUD + pagination + organization isolation.

    Subclass and set `model` to your SQLAlchemy model::

        class TaskRepository(BaseRepository[Task]):
            model = Task

            async def list_pending(self, organization_id: str):
                stmt = select(self.model).where(
                    self.model.organization_id == organization_id,
                    self.model.status == "awaiting_verification",
                )
                result = await self.session.execute(stmt)
                return list(result.scalars().all())
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- List with pagination --

    async def list(
        self,
        organization_id: str,
        page: int = 1,
        limit: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """List items newest first with optional equality filters.

        Without ``limit`` every matching item is returned. Returns
        (items, total_count).
        """
        stmt = select(self.model).where(self.model.organization_id == organization_id)
        count_stmt = select(func.count()).select_from(self.model).where(
            self.model.organization_id == organization_id
        )

        if filters:
            for col_name, value in filters.items():
                if hasattr(self.model, col_name) and value is not None:
                    stmt = stmt.where(getattr(self.model, col_name) == value)
                    count_stmt = count_stmt.where(getattr(self.model, col_name) == value)

        stmt = stmt.order_by(self.model.created_at.desc())
        if limit is not None:
            stmt = stmt.offset((page - 1) * limit).limit(limit)

        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        return items, total

    # -- Get by ID --

    async def get(
        self,
        item_id: str | UUID,
        organization_id: str,
        refresh: bool = False,
        for_update: bool = False,
    ) -> ModelT | None:
        """Get a single item by ID, only if it belongs to the organization.

        ``for_update`` row-locks the item until the transaction ends.
        """
        key = parse_id(item_id)
        if key is None:
            return None
        stmt = select(self.model).where(
            self.model.id == key,
            self.model.organization_id == organization_id,
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # -- Create --

    async def create(self, organization_id: str, data: dict[str, Any]) -> ModelT:
        """Create a new item owned by the organization."""
        item = self.model(organization_id=organization_id, **data)
        self.session.add(item)
        await self.session.flush()
        return item

    # -- Update --

    async def update(
        self, item_id: str | UUID, organization_id: str, data: dict[str, Any]
    ) -> ModelT | None:
        """Apply field changes in one statement. Returns None if not found."""
        if not await self.conditional_update(item_id, organization_id, data):
            return None
        return await self.get(item_id, organization_id, refresh=True)

    async def conditional_update(
        self,
        item_id: str | UUID,
        organization_id: str,
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> bool:
        """Compare-and-swap: update only if the row still satisfies `conditions`.

        Issues a single ``UPDATE ... WHERE id = ? AND organization_id = ?
        AND <conditions>`` and returns whether a row matched. Identity,
        ownership and creation time are never written.
        """
        key = parse_id(item_id)
        if key is None:
            return False
        values = {
            k: v for k, v in values.items()
            if hasattr(self.model, k) and k not in ("id", "organization_id", "created_at")
        }
        stmt = (
            update(self.model)
            .where(
                self.model.id == key,
                self.model.organization_id == organization_id,
                *conditions,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    # -- Delete --

    async def delete(self, item_id: str | UUID, organization_id: str) -> bool:
        """Delete an item. Returns True if deleted, False if not found."""
        item = await self.get(item_id, organization_id)
        if not item:
            return False

        await self.session.delete(item)
        await self.session.flush()
        return True
