"""
Postboard Backend - API Routes Package
======================================

Route Inventory:
    - auth.py:    POST /api/login, GET /api/me, POST /api/logout
    - users.py:   POST /api/register, POST /api/users
    - posts.py:   GET/POST /api/posts, GET/PUT/DELETE /api/posts/{id}
    - files.py:   GET /api/files/{path}
    - health.py:  GET /health

Routes stay thin: they parse the request, call a service and shape the
response. Business rules live in postboard.services.
"""
