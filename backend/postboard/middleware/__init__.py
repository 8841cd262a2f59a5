"""
Postboard Backend - Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Login Rate Limit] → [GZip] → [CORS]
            → [Session] → Route Handler

    1. Request ID first, so every later log line and error body can carry it
    2. Logging wraps everything below it, so rejected logins are logged too
    3. The login limiter rejects excess POST /api/login before the session
       cookie is even decoded
"""
