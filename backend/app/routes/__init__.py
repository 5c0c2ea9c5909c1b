# Routes package init
"""
Warden API - API Routes Package
=================================

Route Inventory:
    - users.py:   POST {API_PREFIX}/users            (register)
                  POST {API_PREFIX}/users/login      (login)
                  GET  {API_PREFIX}/users/profile    (own profile)
                  PUT  {API_PREFIX}/users/profile    (update own profile)
                  GET  {API_PREFIX}/users            (admin: list users)
                  GET  {API_PREFIX}/users/{id}       (admin: single user)
    - index.py:   GET  {API_PREFIX}                  (HTML route index)
    - health.py:  GET  /health                       (service health check)

Routes stay thin: guards are dependencies and business rules live in
services.
"""
