"""
Authentication routes.
POST /auth/register, POST /auth/login, GET /auth/me
"""
from __future__ import annotations

from fastapi import APIRouter, Request, status

from ticketdesk.core.config import settings
from ticketdesk.core.dependencies import CurrentUser, DBSession
from ticketdesk.core.rate_limit import limiter
from ticketdesk.schemas.user import LoginRequest, Token, UserCreate, UserRead
from ticketdesk.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def register(
    user_in: UserCreate,
    db: DBSession,
) -> UserRead:
    user = await auth_service.register_user(db, user_in=user_in)
    return UserRead.model_validate(user)


@router.post(
    "/login",
    response_model=Token,
    summary="Authenticate and receive a session token",
)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: DBSession,
) -> Token:
    return await auth_service.authenticate_user(
        db, email=credentials.email, password=credentials.password
    )


@router.get("/me", response_model=UserRead, summary="Resolve the current session")
async def me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)
