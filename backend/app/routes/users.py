"""
Warden API - User Route Handlers
==================================

What:  Registration, login, profile and admin endpoints under /users.
How:   Thin handlers: guards are declared as dependencies, business rules
       live in UserService, and errors propagate to the global handlers.

Route Inventory (relative to API_PREFIX):
    POST /users            strict limit            register
    POST /users/login      strict limit            login
    GET  /users/profile    protect                 own profile
    PUT  /users/profile    protect                 update own profile
    GET  /users            protect + admin         list users
    GET  /users/{user_id}  protect + admin         single user
"""

import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_user_service
from app.middleware.auth import protect, require_admin
from app.middleware.rate_limit import strict_rate_limit
from app.models.user import User
from app.schemas.user import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserListResponse,
    UserPublic,
    UserResponse,
    UserSummary,
    UserSummaryResponse,
)
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

_AUTH_ERRORS = {
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
}
_ADMIN_ERRORS = {
    **_AUTH_ERRORS,
    403: {"description": "Authenticated user is not an admin", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=UserListResponse,
    responses=_ADMIN_ERRORS,
    summary="List all users (admin)",
)
async def list_users(
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    users = await service.list_users()
    return UserListResponse(users=[UserPublic.model_validate(u) for u in users])


@router.post(
    "",
    response_model=AuthResponse,
    dependencies=[Depends(strict_rate_limit)],
    responses={
        400: {"description": "Invalid input or user already exists", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def create_user(
    payload: RegisterRequest,
    service: UserService = Depends(get_user_service),
) -> AuthResponse:
    data = await service.register(payload)
    return AuthResponse(data=data, message="User created successfully")


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(strict_rate_limit)],
    responses={
        400: {"description": "Missing email or password", "model": ErrorResponse},
        401: {"description": "Unknown email or wrong password", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Log in and receive an access token",
)
async def login_user(
    payload: LoginRequest,
    service: UserService = Depends(get_user_service),
) -> AuthResponse:
    data = await service.login(payload)
    return AuthResponse(data=data, message="User logged in successfully")


@router.get(
    "/profile",
    response_model=UserResponse,
    responses=_AUTH_ERRORS,
    summary="Get the authenticated user's profile",
)
async def get_profile(user: User = Depends(protect)) -> UserResponse:
    return UserResponse(user=UserPublic.model_validate(user))


@router.put(
    "/profile",
    response_model=UserSummaryResponse,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Invalid email/password or email in use", "model": ErrorResponse},
    },
    summary="Update the authenticated user's profile",
)
async def edit_profile(
    payload: UpdateProfileRequest,
    user: User = Depends(protect),
    service: UserService = Depends(get_user_service),
) -> UserSummaryResponse:
    updated = await service.update_profile(user, payload)
    return UserSummaryResponse(user=UserSummary.model_validate(updated))


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={
        **_ADMIN_ERRORS,
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Get a single user by ID (admin)",
)
async def get_user_by_id(
    user_id: str,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await service.get_user(user_id)
    return UserResponse(user=UserPublic.model_validate(user))
