"""Principal extraction at the identity boundary.

Credential checks, JWT verification and second-factor enrollment happen in
the authenticating gateway in front of this service. The gateway forwards
the verified identity as headers:

- ``X-User-Id``: opaque user id
- ``X-User-Role``: ``manager``, ``employee`` or ``regular``
- ``X-Organization-Id``: the organization the user belongs to, if any

Routes depend on ``get_principal`` (identity only) or ``get_org_principal``
(identity plus organization membership). They are coroutines: FastAPI runs
sync dependencies in a worker thread, where bound log context would be lost.
"""

from typing import Annotated, Awaitable, Callable, Optional

import structlog
from fastapi import Depends, Header

from core.errors import AuthenticationError, AuthorizationError
from taskboard.rules import Principal, Role

log = structlog.get_logger(__name__)


async def get_principal(
    x_user_id: Annotated[Optional[str], Header(description="Authenticated user id")] = None,
    x_user_role: Annotated[Optional[str], Header(description="Role of the user")] = None,
    x_organization_id: Annotated[
        Optional[str], Header(description="Organization of the user, if any")
    ] = None,
) -> Principal:
    """Build the principal from gateway headers.

    Raises AuthenticationError when the identity is missing or the role
    is not one we know.
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError("Not authorized, no identity provided")
    try:
        role = Role((x_user_role or "").strip().lower())
    except ValueError:
        log.warning("auth_invalid_role", user_id=x_user_id, role=x_user_role)
        raise AuthenticationError("Not authorized, invalid role") from None

    principal = Principal(
        id=x_user_id.strip(),
        role=role,
        organization_id=(x_organization_id or "").strip() or None,
    )
    structlog.contextvars.bind_contextvars(user_id=principal.id, role=role.value)
    return principal


async def get_org_principal(principal: Principal = Depends(get_principal)) -> Principal:
    """Principal that belongs to an organization."""
    if not principal.organization_id:
        raise AuthorizationError("Not part of an organization")
    structlog.contextvars.bind_contextvars(organization_id=principal.organization_id)
    return principal


def require_role(*roles: Role) -> Callable[..., Awaitable[Principal]]:
    """Dependency factory restricting a route to the given roles.

    Usage::

        @router.get("/pending")
        async def pending(principal: Principal = Depends(require_role(Role.MANAGER))):
            ...
    """
    allowed = {r.value for r in roles}

    async def _dependency(principal: Principal = Depends(get_org_principal)) -> Principal:
        if principal.role.value not in allowed:
            log.info("auth_role_denied", user_id=principal.id, role=principal.role.value)
            raise AuthorizationError(f"Role {principal.role.value} is not allowed to access this route")
        return principal

    return _dependency
