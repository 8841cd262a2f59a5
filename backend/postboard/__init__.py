"""
Postboard Backend - Application Package Initializer
===================================================

What: Marks the `postboard` directory as a Python package.
Who:  Used by uvicorn (`postboard.main:app`), Alembic, pytest and the CLI.

Architecture Note:
    The backend is split into thin layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (Business Rules)      │  ← Transactions, tags, images, auth
    ├─────────────────────────────────────┤
    │   Repositories (Query Composition)  │  ← Filters, pagination, tag sync
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic DTOs
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the ORM directly; services never build HTTP responses.
"""

__version__ = "1.0.0"
