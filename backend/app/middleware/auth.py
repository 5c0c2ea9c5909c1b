"""
Warden API - Authentication & Role Gates
==========================================

What:  `protect` resolves a bearer token into the authenticated User;
       `require_admin` additionally requires the admin role flag.
How:   Both are FastAPI dependencies. The resolved User is the dependency's
       return value and reaches the handler as a parameter, so every later
       stage receives the principal explicitly.

Pipeline per protected request:
    Authorization header → "Bearer " prefix → TokenService.verify
    → expiry re-check → UserStore.find_by_id (no password) → handler

Failure responses:
    missing/non-Bearer header            → 401 "Not authorized, no token provided"
    bad signature / malformed / expired /
    missing subject / unknown subject    → 401 "Not authorized, invalid token"
    authenticated but not admin          → 403 "Not authorized as an admin"
"""

import logging
import re
import uuid
from typing import Optional

from fastapi import Depends, Header

from app.dependencies import get_token_service, get_user_store
from app.exceptions import ForbiddenError, InvalidTokenError, UnauthorizedError
from app.models.user import User
from app.services.token_service import TokenService
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)

NO_TOKEN_MESSAGE = "Not authorized, no token provided"


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an Authorization header or raise UnauthorizedError."""
    if not authorization or authorization[:7].lower() != "bearer ":
        raise UnauthorizedError(NO_TOKEN_MESSAGE)
    token = _BEARER_PREFIX.sub("", authorization, count=1).strip()
    if not token:
        raise UnauthorizedError(NO_TOKEN_MESSAGE)
    return token


async def protect(
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
    users: UserStore = Depends(get_user_store),
) -> User:
    """Authenticate the request and return its principal."""
    token = extract_bearer_token(authorization)

    try:
        claims = tokens.verify(token)
    except InvalidTokenError as e:
        logger.warning("Rejected bearer token (%s)", e.context.get("reason", "invalid"))
        raise

    # verify() already checked exp; checked again against the same clock
    if claims.is_expired(tokens.clock()):
        logger.warning("Rejected bearer token (expired)")
        raise InvalidTokenError(context={"reason": "expired"})

    try:
        user_id = uuid.UUID(claims.subject)
    except ValueError:
        logger.warning("Rejected bearer token (subject is not a user id)")
        raise InvalidTokenError(context={"reason": "bad_subject"}) from None

    user = await users.find_by_id(user_id, exclude_password=True)
    if user is None:
        logger.warning("Rejected bearer token (user %s no longer exists)", user_id)
        raise InvalidTokenError(context={"reason": "unknown_subject"})

    return user


async def require_admin(user: Optional[User] = Depends(protect)) -> User:
    """Allow the request through only for admin principals."""
    if user is None:
        raise UnauthorizedError("Not authorized, no user context")
    if not user.is_admin:
        logger.warning("Admin route denied for user %s", user.id)
        raise ForbiddenError()
    return user
