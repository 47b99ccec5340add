"""
Authentication service.
Handles registration, login and session resolution.
Business logic lives here; routes only call these methods.
"""
from __future__ import annotations

import logging
import uuid

from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.config import settings
from ticketdesk.core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    InvalidTokenException,
)
from ticketdesk.core.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from ticketdesk.crud.user import crud_user
from ticketdesk.models.user import User
from ticketdesk.schemas.user import Token, UserCreate, UserRead

logger = logging.getLogger(__name__)


class AuthService:

    async def register_user(
        self, db: AsyncSession, *, user_in: UserCreate
    ) -> User:
        """
        Register a new user.
        Validates email/username uniqueness, hashes password and creates user.
        """
        # Check email uniqueness
        if await crud_user.exists(db, email=user_in.email.lower()):
            raise ConflictException("A user with this email already exists")

        # Check username uniqueness
        if await crud_user.exists(db, username=user_in.username):
            raise ConflictException("A user with this username already exists")

        user = await crud_user.create_user(
            db,
            email=user_in.email,
            username=user_in.username,
            hashed_password=hash_password(user_in.password),
            full_name=user_in.full_name,
        )
        logger.info("Registered user %s", user.id, extra={"actor_id": user.id})
        return user

    async def authenticate_user(
        self, db: AsyncSession, *, email: str, password: str
    ) -> Token:
        """Verify credentials and issue a session token."""
        user = await crud_user.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            raise InvalidCredentialsException()

        return Token(
            access_token=create_session_token(str(user.id)),
            expires_in=settings.session_expire_seconds,
            user=UserRead.model_validate(user),
        )

    async def resolve_session(self, db: AsyncSession, *, token: str) -> User:
        """Map a session token back to the user it was issued for."""
        try:
            payload = decode_session_token(token)
        except JWTError:
            raise InvalidTokenException("Invalid or expired session token")

        user_id_str = payload.get("sub")
        if not user_id_str:
            raise InvalidTokenException("Malformed token: missing subject")

        try:
            user_id = uuid.UUID(user_id_str)
        except ValueError:
            raise InvalidTokenException("Malformed token: invalid subject format")

        user = await crud_user.get(db, user_id)
        if user is None:
            raise InvalidTokenException("Token subject no longer exists")
        return user


auth_service = AuthService()
