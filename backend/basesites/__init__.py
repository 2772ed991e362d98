"""
BaseSites Backend: Application Package
======================================

What: REST backend for the BaseSites jump-site directory.
Who:  Imported by uvicorn (`basesites.main:app`), Alembic and pytest.

Layers:

    ┌─────────────────────────────────────┐
    │     Routes + Middleware (HTTP)      │  envelopes, auth, API key
    ├─────────────────────────────────────┤
    │        Services (domain rules)      │  review workflow, quotas, roles
    ├─────────────────────────────────────┤
    │       Models & Schemas (data)       │  SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │       Database (persistence)        │  async sessions, one per request
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
