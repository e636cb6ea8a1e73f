"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- OrganizationMixin: Adds organization_id, UUID primary key, and timestamps

Every organization-owned model includes OrganizationMixin. The
organization_id column is indexed because every query filters on it.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all EquiTask models."""
    pass


class OrganizationMixin:
    """Mixin providing organization scoping and standard audit columns.

    Adds:
    - id: UUID primary key (auto-generated)
    - organization_id: Indexed owning organization, never changed after insert
    - created_at: Timestamp set on insert
    - updated_at: Timestamp updated on every change
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[str] = mapped_column(
        String(64),
        index=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )
