"""
Warden API - User SQLAlchemy Model
====================================

What:  ORM model representing the `users` table.
Who:   Used by SQLAlchemyUserStore for CRUD operations and by Alembic for
       schema management.

Table Design:
    - UUID primary key, assigned at insert
    - email: unique, always stored lower-cased and trimmed, so the unique
      index gives case-insensitive uniqueness
    - password: bcrypt hash only, never plaintext
    - is_admin: defaults to false; no API path writes it
    - created_at / updated_at: UTC timestamps
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered account (the principal a request acts on behalf of).

    Lifecycle:
        1. Created by registration (is_admin always False)
        2. Mutated by profile update (name, email, password only)
        3. Never deleted by this service
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased, trimmed email; unique index enforces one account per address",
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the account password",
    )

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        # never includes the password hash
        return f"<User(id={self.id}, email='{self.email}', is_admin={self.is_admin})>"
