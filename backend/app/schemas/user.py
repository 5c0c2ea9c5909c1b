"""
Warden API - Pydantic Request/Response Schemas
================================================

What:  The API contract for the user endpoints.
How:   Request models accept every field as optional so UserService can
       answer with field-specific messages; unknown fields (including any
       attempt to send isAdmin) are ignored. Response models serialize with
       the public field names (_id, isAdmin, createdAt, updatedAt) and have
       no password field at all.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """Body of POST /users."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Body of POST /users/login."""

    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    """Body of PUT /users/profile. Empty or missing fields are left unchanged."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(BaseModel):
    """Identity fields shared by every user representation."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID = Field(alias="_id")
    name: str
    email: str
    is_admin: bool = Field(alias="isAdmin")


class UserPublic(UserSummary):
    """Full user document as returned by the profile and admin endpoints."""

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class AuthData(UserSummary):
    token: str


class AuthResponse(BaseModel):
    """Envelope returned by registration and login."""

    success: bool = True
    data: AuthData
    message: str


class UserResponse(BaseModel):
    user: UserPublic


class UserSummaryResponse(BaseModel):
    user: UserSummary


class UserListResponse(BaseModel):
    users: List[UserPublic]


# ══════════════════════════════════════════════════════════════════════════
# Error / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Error envelope produced by the global exception handlers.

    stack is only present outside production.
    """

    success: bool = False
    message: str
    stack: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float
