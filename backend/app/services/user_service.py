"""
Warden API - User Service (Business Logic)
============================================

What:  Registration, login, profile management and admin lookups.
How:   Validates input, normalizes email, hashes/verifies passwords through
       PasswordHasher, persists through UserStore and mints tokens through
       TokenService. Raises application exceptions; routes stay thin.
Who:   Called by the /users route handlers.

Flows:
    register:  validate → email free? → hash → create (is_admin=False) → token
    login:     validate → find by email → verify password → token
    update:    validate provided fields → email free? → re-hash only if a new
               password was supplied → save

bcrypt is CPU-bound, so hashing and verification run in the threadpool.
"""

import logging
import re
import uuid
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from app.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.models.user import User
from app.schemas.user import (
    AuthData,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from app.services.password_service import MAX_PASSWORD_BYTES, PasswordHasher
from app.services.token_service import TokenService
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email: str) -> str:
    """Return the normalized email or raise ValidationError."""
    normalized = normalize_email(email)
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("Please provide a valid email", field="email")
    return normalized


def validate_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes", field="password"
        )
    return password


class UserService:
    """Business logic for the user endpoints. One instance per request."""

    def __init__(self, store: UserStore, tokens: TokenService, hasher: PasswordHasher):
        self.store = store
        self.tokens = tokens
        self.hasher = hasher

    def _auth_data(self, user: User) -> AuthData:
        return AuthData(
            id=user.id,
            name=user.name,
            email=user.email,
            is_admin=user.is_admin,
            token=self.tokens.issue(str(user.id)),
        )

    async def register(self, payload: RegisterRequest) -> AuthData:
        name = (payload.name or "").strip()
        if not name or not payload.email or not payload.password:
            raise ValidationError("Please provide name, email, and password")

        email = validate_email(payload.email)
        password = validate_password(payload.password)

        if await self.store.find_by_email(email) is not None:
            raise ConflictError("User already exists")

        password_hash = await run_in_threadpool(self.hasher.hash, password)
        # is_admin is never taken from the request
        user = await self.store.create(name=name, email=email, password_hash=password_hash)
        logger.info("User registered: %s", user.id)
        return self._auth_data(user)

    async def login(self, payload: LoginRequest) -> AuthData:
        if not payload.email or not payload.password:
            raise ValidationError("Please provide an email and password")

        user = await self.store.find_by_email(normalize_email(payload.email))
        if user is None:
            logger.warning("Login failed: unknown email")
            raise UnauthorizedError("No user found with this email")

        matches = await run_in_threadpool(self.hasher.verify, payload.password, user.password)
        if not matches:
            logger.warning("Login failed: invalid password for user %s", user.id)
            raise UnauthorizedError("Invalid credentials")

        logger.info("User logged in: %s", user.id)
        return self._auth_data(user)

    async def update_profile(self, user: User, payload: UpdateProfileRequest) -> User:
        """
        Apply a partial profile update to the authenticated user.

        All provided fields are validated before anything is mutated, so a
        rejected request leaves the user untouched. The password hash is
        recomputed only when a new password is supplied.
        """
        new_email: Optional[str] = None
        if payload.email:
            new_email = validate_email(payload.email)
            existing = await self.store.find_by_email(new_email)
            if existing is not None and existing.id != user.id:
                raise ConflictError("Email already in use")

        new_password: Optional[str] = None
        if payload.password:
            new_password = validate_password(payload.password)

        new_name = payload.name.strip() if payload.name else ""

        if new_email is not None:
            user.email = new_email
        if new_password is not None:
            user.password = await run_in_threadpool(self.hasher.hash, new_password)
        if new_name:
            user.name = new_name

        await self.store.save(user)
        logger.info(
            "Profile updated for user %s (email=%s, password=%s, name=%s)",
            user.id,
            new_email is not None,
            new_password is not None,
            bool(new_name),
        )
        return user

    async def list_users(self) -> List[User]:
        return await self.store.list_all()

    async def get_user(self, user_id: str) -> User:
        try:
            parsed = uuid.UUID(user_id)
        except ValueError:
            raise NotFoundError(resource="User", resource_id=user_id)

        user = await self.store.find_by_id(parsed, exclude_password=True)
        if user is None:
            raise NotFoundError(resource="User", resource_id=user_id)
        return user
