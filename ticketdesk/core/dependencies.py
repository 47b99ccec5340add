"""
FastAPI dependency injection functions.
Provides get_db and get_current_user.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.exceptions import UnauthorizedException
from ticketdesk.db.session import get_db
from ticketdesk.models.user import User
from ticketdesk.services.auth_service import auth_service

# Re-export get_db so routes can import from one place
__all__ = ["get_db", "get_current_user", "DBSession", "CurrentUser"]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> User:
    """
    Extract the session token from the Authorization header and resolve it
    to the authenticated User.
    """
    if credentials is None:
        raise UnauthorizedException("Missing authentication token")
    return await auth_service.resolve_session(db, token=credentials.credentials)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
