"""FastAPI dependency injection utilities."""

from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.catalog.loader import get_catalog
from cogscreen.catalog.models import Catalog
from cogscreen.core.security import decode_access_token
from cogscreen.db.session import get_db
from cogscreen.models.audit_event import ActorType
from cogscreen.services.audit import ANONYMOUS_ACTOR, Actor

# Security scheme
security = HTTPBearer(auto_error=False)


class StaffRole(str, Enum):
    """Staff roles asserted by the identity provider."""

    ADMIN = "admin"
    CLINICAL_STAFF = "clinical_staff"


async def get_current_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict | None:
    """Extract and decode the current JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Decoded token payload or None
    """
    if not credentials:
        return None

    return decode_access_token(credentials.credentials)


def _actor_from_token(token: dict) -> Actor:
    return Actor(
        actor_type=ActorType(token["actor_type"]),
        actor_id=token.get("sub"),
        name=token.get("name"),
        role=token.get("role"),
    )


async def get_submitting_actor(
    token: Annotated[dict | None, Depends(get_current_token)],
) -> Actor:
    """Actor for submission endpoints: a patient, a staff member, or anonymous.

    Returns:
        Actor built from the token claims, or the anonymous actor
    """
    if not token or token.get("actor_type") not in (
        ActorType.PATIENT.value,
        ActorType.STAFF.value,
    ):
        return ANONYMOUS_ACTOR
    return _actor_from_token(token)


async def get_current_staff(
    token: Annotated[dict | None, Depends(get_current_token)],
) -> Actor:
    """Get the current authenticated staff member.

    Args:
        token: Decoded JWT token

    Returns:
        Staff actor

    Raises:
        HTTPException: If not authenticated or not a staff member
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if token.get("actor_type") != ActorType.STAFF.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff authentication required",
        )

    if token.get("role") not in {role.value for role in StaffRole}:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return _actor_from_token(token)


def require_roles(*roles: StaffRole):
    """Create a dependency that requires one of the given staff roles.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles(StaffRole.ADMIN))])
    """
    allowed = {role.value for role in roles}

    async def role_checker(
        staff: Annotated[Actor, Depends(get_current_staff)],
    ) -> Actor:
        if staff.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return staff

    return role_checker


def get_request_id(request: Request) -> str | None:
    """Request ID assigned by the request middleware, else the raw header.

    Args:
        request: FastAPI request

    Returns:
        Request ID or None
    """
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")


# Type aliases for cleaner dependency injection
CurrentStaff = Annotated[Actor, Depends(get_current_staff)]
AdminStaff = Annotated[Actor, Depends(require_roles(StaffRole.ADMIN))]
SubmittingActor = Annotated[Actor, Depends(get_submitting_actor)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
CatalogDep = Annotated[Catalog, Depends(get_catalog)]
RequestId = Annotated[str | None, Depends(get_request_id)]
