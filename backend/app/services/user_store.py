"""
Warden API - User Storage
===========================

What:  The principal storage contract and its SQLAlchemy implementation.
How:   UserStore is an abstract interface; SQLAlchemyUserStore implements it
       over a request-scoped AsyncSession. Callers depend only on UserStore,
       so tests and alternative backends plug in through FastAPI's
       dependency overrides.
Who:   UserService (registration, login, profile, admin listing) and the
       `protect` dependency (principal lookup by token subject).

Email uniqueness is enforced by the unique index on users.email. A racing
insert or update that trips the index surfaces as ConflictError, the same
error the service's pre-check raises.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from app.exceptions import ConflictError, DatabaseError
from app.models.user import User

logger = logging.getLogger(__name__)


class UserStore(ABC):
    """
    Abstract interface for principal persistence.

    Contract:
        - email arguments are already normalized (lower-cased, trimmed)
        - create/save raise ConflictError on a duplicate email
        - lookups return None (never raise) for unknown ids or emails
    """

    @abstractmethod
    async def find_by_id(
        self, user_id: uuid.UUID, exclude_password: bool = True
    ) -> Optional[User]:
        """
        Load a user by primary key.

        With exclude_password=True the password hash is not loaded at all;
        touching it on the returned object raises instead of lazy-loading.
        """
        ...

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Load a user, including the password hash, by normalized email."""
        ...

    @abstractmethod
    async def list_all(self) -> List[User]:
        """All users, oldest first, without password hashes."""
        ...

    @abstractmethod
    async def create(self, name: str, email: str, password_hash: str) -> User:
        """Insert a new non-admin user."""
        ...

    @abstractmethod
    async def save(self, user: User) -> None:
        """Persist changes made to a loaded user."""
        ...


class SQLAlchemyUserStore(UserStore):
    """UserStore backed by the `users` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(
        self, user_id: uuid.UUID, exclude_password: bool = True
    ) -> Optional[User]:
        query = select(User).where(User.id == user_id)
        if exclude_password:
            query = query.options(defer(User.password, raiseload=True))
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise DatabaseError(context={"user_id": str(user_id)})
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        try:
            result = await self.session.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("Database error loading user by email: %s", str(e))
            raise DatabaseError()
        return result.scalar_one_or_none()

    async def list_all(self) -> List[User]:
        query = (
            select(User)
            .options(defer(User.password, raiseload=True))
            .order_by(User.created_at)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e))
            raise DatabaseError()
        return list(result.scalars().all())

    async def create(self, name: str, email: str, password_hash: str) -> User:
        user = User(name=name, email=email, password=password_hash, is_admin=False)
        self.session.add(user)
        try:
            # flush assigns the id and hits the unique index now
            await self.session.flush()
        except IntegrityError:
            logger.info("Registration rejected by unique email index")
            raise ConflictError("User already exists")
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e))
            raise DatabaseError()
        return user

    async def save(self, user: User) -> None:
        try:
            await self.session.flush()
        except IntegrityError:
            logger.info("Profile update rejected by unique email index (user %s)", user.id)
            raise ConflictError("Email already in use")
        except SQLAlchemyError as e:
            logger.error("Database error saving user %s: %s", user.id, str(e))
            raise DatabaseError(context={"user_id": str(user.id)})
