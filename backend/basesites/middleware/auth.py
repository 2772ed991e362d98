"""
BaseSites Backend: Authentication Dependencies
==============================================

What:  FastAPI dependencies that turn `Authorization: Bearer <token>` into an
       AuthenticatedUser and gate routes by role.
How:   The token is verified by the IdentityGateway stored on
       `app.state.identity_gateway` (created in the lifespan). The role is
       then read from `profiles`; a missing or unreadable role leaves
       `role=None`, which every role gate denies.

Usage:
    @router.get("/profile")
    async def get_profile(user: AuthenticatedUser = Depends(authenticate_user)): ...

    @router.post("/admin/locations")
    async def create(user: AuthenticatedUser = Depends(require_role(Role.ADMIN))): ...
"""

import logging
from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.exceptions import ForbiddenError, UnauthorizedError
from basesites.services.access_policy import Role, authorize
from basesites.services.identity_service import IdentityGateway
from basesites.services.profile_service import profile_service

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our 401 envelope, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    id: UUID
    email: Optional[str] = None
    role: Optional[Role] = None


def get_identity_gateway(request: Request) -> IdentityGateway:
    return request.app.state.identity_gateway


async def authenticate_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityGateway = Depends(get_identity_gateway),
    db: AsyncSession = Depends(get_db_session),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing or invalid authorization header")

    user = await identity.verify_token(credentials.credentials)
    role = await profile_service.get_role(db, user.id)
    return AuthenticatedUser(id=user.id, email=user.email, role=role)


def require_role(required: Role) -> Callable:
    """Dependency factory: authenticates, then demands at least `required`."""

    async def dependency(
        user: AuthenticatedUser = Depends(authenticate_user),
    ) -> AuthenticatedUser:
        if not authorize(user.role, required):
            logger.warning(
                "User %s with role %s denied (requires %s)",
                user.id,
                user.role.value if user.role else None,
                required.value,
            )
            raise ForbiddenError(f"{required.value.title()} access required")
        return user

    return dependency
