"""
Warden API - FastAPI Dependency Providers
===========================================

What:  Wires request handlers to the services they need.
How:   Process-wide services (token service, password hasher, rate limiters)
       live on app.state and are created once by create_app(). Request-scoped
       collaborators (DB session, user store, user service) are built per
       request. Tests swap any of them with app.dependency_overrides.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.services.password_service import PasswordHasher
from app.services.token_service import TokenService
from app.services.user_service import UserService
from app.services.user_store import SQLAlchemyUserStore, UserStore


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


async def get_user_store(db: AsyncSession = Depends(get_db_session)) -> UserStore:
    return SQLAlchemyUserStore(db)


async def get_user_service(
    store: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> UserService:
    return UserService(store=store, tokens=tokens, hasher=hasher)
