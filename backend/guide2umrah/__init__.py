"""
Guide2Umrah Backend: Application Package
=========================================

What: Administrative REST API behind the Guide2Umrah marketing site.
Who:  Imported by uvicorn (`guide2umrah.main:app`), Alembic, the CLI and pytest.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (auth, offerings, ...)   │  ← Validation, orchestration
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Outbound integrations (image host, SMTP) live in services and are
    never called from routes directly.
"""

__version__ = "1.0.0"
