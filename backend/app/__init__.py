"""
Warden API - Application Package Initializer
==============================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (app.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes + Middleware (HTTP layer)  │  ← guards, envelopes, headers
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← users, tokens, passwords, limits
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the database directly; they call UserService, which
    reaches storage only through the UserStore interface.
"""

__version__ = "1.0.0"
