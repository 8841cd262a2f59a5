"""
Postboard Backend - Services Layer
==================================

What:  Business rules sitting between routes (HTTP) and repositories (persistence).
How:   Services are stateless. Every method receives the request's AsyncSession
       as its first argument and only flushes; the session dependency commits or
       rolls back once the request finishes.

Service Inventory:
    - normalize_tags:  canonical form of tag names (tags.py)
    - ImageStorage:    image validation, storage and cleanup (storage.py)
    - PostService:     post listing and create/update/delete units of work
    - UserService:     registration under the configured user cap
    - AuthService:     session login, logout and current-user lookup
"""
