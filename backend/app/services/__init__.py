# Services package init
"""
Warden API - Services Layer
=============================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - PasswordHasher: bcrypt hashing and verification
    - TokenService: HS256 access tokens with an injected clock
    - RateLimiter / RateLimitStore / RateLimitSweeper: fixed-window limits
    - UserStore (abstract) / SQLAlchemyUserStore: user persistence
    - UserService: registration, login, profile and admin lookups
"""
